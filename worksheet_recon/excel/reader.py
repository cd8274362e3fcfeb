from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import FileSourceConfig
from ..models.dataset import NormalizedDataset, SourceFile
from ..models.error_record import FILE_LEVEL, READ_FAILURE, ErrorRecord

"""Reader adapter: spreadsheet/CSV files -> NormalizedDataset.

Excel layout of the exported worksheets:
- row 1: headers (blank header cells become column_{n}, 1-based)
- row 2: filter controls, skipped by default
- row 3+: data (configurable via data_start_row)

CSV files yield a single worksheet named "csv_main" with headers on the first
line and data from the second. Every cell is converted to a trimmed string
and rows without meaningful values are dropped.
"""

__all__ = [
    "DatasetReadError",
    "CSV_WORKSHEET_NAME",
    "EXCEL_SUFFIXES",
    "read_excel_file",
    "normalize_sheet",
    "load_source_file",
    "load_source_files",
]

logger = logging.getLogger(__name__)

CSV_WORKSHEET_NAME = "csv_main"
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
DEFAULT_DATA_START_ROW = 3

# Values left behind by filter dropdowns; they do not make a row meaningful
FILTER_PLACEHOLDERS = {
    "(all)",
    "(select all)",
    "(multiple items)",
    "select...",
    "choose...",
    "filter...",
    "---",
    "...",
}


class DatasetReadError(Exception):
    """Raised when a source file cannot be read into datasets."""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):  # pragma: no cover - array-like cell
        pass
    return str(value).strip()


def _is_meaningful(value: str) -> bool:
    return bool(value) and value.lower() not in FILTER_PLACEHOLDERS


def _unique_headers(raw_headers: list[str]) -> list[str]:
    """Name blank headers column_{n} and suffix duplicates (_2, _3, ...)."""
    headers: list[str] = []
    seen: dict[str, int] = {}
    for position, raw in enumerate(raw_headers, start=1):
        name = raw or f"column_{position}"
        count = seen.get(name, 0) + 1
        seen[name] = count
        headers.append(name if count == 1 else f"{name}_{count}")
    return headers


def read_excel_file(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read a workbook returning raw string DataFrames keyed by sheet name.

    Parameters
    ----------
    path: workbook path
    target_sheets: restrict to these sheet names (None = all sheets)
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path) as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            # raw read without header; header row is applied in normalize_sheet
            dfs[str(name)] = xls.parse(name, header=None, dtype=str, keep_default_na=False)
    return dfs


def normalize_sheet(df: pd.DataFrame, sheet_name: str, data_start_row: int = DEFAULT_DATA_START_ROW) -> NormalizedDataset | None:
    """Normalize a raw DataFrame using its first row as header.

    Returns None for sheets without a header row or without data rows.
    Columns whose header and data cells are all blank are dropped.
    """
    if data_start_row < 2:
        raise ValueError(f"data_start_row must be >= 2: {data_start_row}")
    if df.shape[0] < 1:
        logger.warning("worksheet '%s' is empty - skipping", sheet_name)
        return None

    grid = [[_cell_text(v) for v in row] for row in df.itertuples(index=False, name=None)]
    header_cells = grid[0]
    data = grid[data_start_row - 1:]

    keep = [
        col
        for col in range(len(header_cells))
        if header_cells[col] or any(_is_meaningful(r[col]) for r in data if col < len(r))
    ]
    if not keep:
        logger.warning("worksheet '%s' has no columns with data - skipping", sheet_name)
        return None

    headers = _unique_headers([header_cells[col] for col in keep])
    rows: list[dict[str, str]] = []
    for raw in data:
        values = [raw[col] if col < len(raw) else "" for col in keep]
        if not any(_is_meaningful(v) for v in values):
            continue
        rows.append(dict(zip(headers, values, strict=True)))

    if not rows:
        logger.warning("worksheet '%s' has no data rows - skipping", sheet_name)
        return None

    dataset = NormalizedDataset(name=sheet_name, headers=tuple(headers), rows=tuple(rows))
    logger.info(
        "normalized worksheet '%s': %d headers, %d data rows",
        sheet_name,
        len(headers),
        len(rows),
    )
    return dataset


def _read_csv(path: Path) -> pd.DataFrame:
    return pd.read_csv(
        path,
        header=None,
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        encoding="utf-8-sig",
    )


def load_source_file(
    path: Path,
    *,
    file_id: str | None = None,
    name: str | None = None,
    data_start_row: int = DEFAULT_DATA_START_ROW,
) -> SourceFile:
    """Read every worksheet of one file into a SourceFile.

    Raises:
        DatasetReadError: missing file, unsupported extension or unreadable content
    """
    if not path.exists():
        raise DatasetReadError(f"file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            frames = {CSV_WORKSHEET_NAME: _read_csv(path)}
            start_row = 2
        elif suffix in EXCEL_SUFFIXES:
            frames = read_excel_file(path)
            start_row = data_start_row
        else:
            raise DatasetReadError(f"unsupported file type '{suffix}': {path}")
    except DatasetReadError:
        raise
    except Exception as e:
        raise DatasetReadError(f"failed to read {path}: {e}") from e

    worksheets: list[NormalizedDataset] = []
    for sheet_name, df in frames.items():
        dataset = normalize_sheet(df, sheet_name, data_start_row=start_row)
        if dataset is not None:
            worksheets.append(dataset)

    source = SourceFile(
        file_id=file_id or path.stem,
        file_name=name or path.name,
        worksheets=worksheets,
    )
    logger.info("loaded %s: %d worksheet(s)", source.file_name, len(worksheets))
    return source


def load_source_files(
    sources: Iterable[FileSourceConfig],
    *,
    base_dir: Path | None = None,
    data_start_row: int = DEFAULT_DATA_START_ROW,
    error_log: ErrorLogBuffer | None = None,
) -> list[SourceFile]:
    """Load every configured file; relative paths resolve against base_dir.

    A file that cannot be read is left out of the result and recorded as a
    file-level READ_FAILURE. Requests naming it fail to resolve later and
    are skipped like any other missing file.
    """
    loaded: list[SourceFile] = []
    for source in sources:
        path = Path(source.path)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        try:
            loaded.append(
                load_source_file(
                    path,
                    file_id=source.file_id,
                    name=source.name,
                    data_start_row=data_start_row,
                )
            )
        except DatasetReadError as e:
            logger.warning("skipping file %s: %s", source.file_id, e)
            if error_log is not None:
                error_log.append(
                    ErrorRecord.create(
                        file=source.file_id,
                        worksheet=FILE_LEVEL,
                        request="load",
                        error_type=READ_FAILURE,
                        message=str(e),
                    )
                )
    return loaded
