from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from worksheet_recon.config.loader import ConfigError, load_config
from worksheet_recon.excel.reader import load_source_files
from worksheet_recon.logging.error_log import ErrorLogBuffer
from worksheet_recon.logging.init import log_summary, set_debug, setup_logging
from worksheet_recon.models.config_models import ReconcileConfig
from worksheet_recon.services.reconciler import ReconcileError, reconcile_batch
from worksheet_recon.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (overrides RECON_MAX_WORKERS / RECON_TIMEOUT_SECONDS)
- Load and validate the YAML run config
- Read every configured file into normalized worksheets (unreadable files
  are logged and skipped; the run is fatal only when none can be read)
- Run the batch, flush the error log, write the JSON report
- Print the SUMMARY line and exit with the contract exit code
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/recon.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; values in .env win over the process env."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _apply_env_overrides(cfg: ReconcileConfig) -> ReconcileConfig:
    """Apply RECON_MAX_WORKERS / RECON_TIMEOUT_SECONDS on top of the config.

    Raises:
        ConfigError: If a variable is set but not a number
    """
    changes: dict[str, object] = {}
    workers = os.getenv("RECON_MAX_WORKERS")
    if workers:
        try:
            changes["max_workers"] = int(workers)
        except ValueError as e:
            raise ConfigError(f"RECON_MAX_WORKERS must be an integer: {workers}") from e
    timeout = os.getenv("RECON_TIMEOUT_SECONDS")
    if timeout:
        try:
            changes["timeout_seconds"] = float(timeout)
        except ValueError as e:
            raise ConfigError(f"RECON_TIMEOUT_SECONDS must be a number: {timeout}") from e
    return replace(cfg, **changes) if changes else cfg


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Worksheet reconciliation across spreadsheet files")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Run config (YAML)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print worksheet headers & first rows then exit")
    p.add_argument("--output", type=Path, default=None, help="Write the JSON report to this path")
    return p.parse_args(argv)


def _inspect_data(files) -> int:
    for source in files:
        print(f"FILE: {source.file_id} ({source.file_name})")
        if not source.worksheets:
            print("  no worksheets with data")
            continue
        for ws in source.worksheets:
            print(f"  SHEET: {ws.name} headers={list(ws.headers)} rows={ws.row_count}")
            print("    sample_rows=", [dict(r) for r in ws.rows[:3]])
    return EXIT_SUCCESS_ALL


def _write_report(path: Path, payload: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest flags)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    config_path: Path = args.config
    try:
        cfg = _apply_env_overrides(load_config(config_path))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    files = load_source_files(
        cfg.files,
        base_dir=config_path.parent,
        data_start_row=cfg.data_start_row,
        error_log=error_log,
    )
    if not files:
        error_log.flush()
        logger.error(f"read: none of the {len(cfg.files)} configured file(s) could be read")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(files)

    logger.info(f"Reconciling {len(cfg.comparisons)} request(s) from: {config_path}")

    try:
        result = reconcile_batch(
            cfg.comparisons,
            files,
            thresholds=cfg.thresholds,
            max_workers=cfg.max_workers,
            timeout_seconds=cfg.timeout_seconds,
            error_log=error_log,
        )
    except ReconcileError as e:
        logger.error(f"reconcile: {e}")
        return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.warning(f"{len(result.errors)} error record(s) written to {log_path}")

    output = args.output or (Path(cfg.output) if cfg.output else None)
    if output is not None:
        _write_report(output, result.to_dict())
        logger.info(f"report written to {output}")

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])

    # an unreadable file fails the run even when no request names it
    if result.all_successful and len(files) == len(cfg.files):
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
