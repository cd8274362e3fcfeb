# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from worksheet_recon.logging.init import reset_logging
from worksheet_recon.models import NormalizedDataset


def make_dataset(name: str, headers: list[str], rows: list[list[str]]) -> NormalizedDataset:
    """Build a NormalizedDataset from positional rows."""
    return NormalizedDataset(
        name=name,
        headers=tuple(headers),
        rows=tuple(dict(zip(headers, r)) for r in rows),
    )


def write_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write raw sheet grids (no pandas header row) to an .xlsx file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture(autouse=True)
def _fresh_logging():
    # setup_logging binds sys.stdout at first call; rebind per test for capsys
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("RECON_MAX_WORKERS", raising=False)
        monkeypatch.delenv("RECON_TIMEOUT_SECONDS", raising=False)
        yield p


@pytest.fixture()
def people_sheet() -> list[list[object]]:
    """Excel grid: header row, filter row, data rows."""
    return [
        ["Name", "Email", "City"],
        ["(All)", "(All)", "(All)"],
        ["Ann", "ann@example.com", "Oslo"],
        ["Bob", "bob@example.com", "Bergen"],
        ["Cid", "cid@example.com", "Tromso"],
    ]


@pytest.fixture()
def sample_config_yaml() -> str:
    return """files:
  - id: left
    path: ../data/left.xlsx
    name: Left workbook
  - id: right
    path: ../data/right.xlsx
max_workers: 1
comparisons:
  - file1_id: left
    file1_worksheet: People
    file2_id: right
    file2_worksheet: People
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "recon.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def dataset_factory():
    return make_dataset


@pytest.fixture()
def workbook_factory():
    return write_workbook
