from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from worksheet_recon.logging.error_log import ErrorLogBuffer
from worksheet_recon.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)
from worksheet_recon.models.error_record import FILE_LEVEL, RESOLUTION_FAILURE, ErrorRecord

ERROR_KEYS = {"timestamp", "file", "worksheet", "request", "error_type", "message"}


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert first.name == LOGGER_NAME
    assert len(first.handlers) == 1
    assert get_logger() is first


def test_labeled_output(capsys):
    logger = setup_logging()
    logger.info("hello")
    logger.warning("careful")
    logging.getLogger(f"{LOGGER_NAME}.services.reconciler").error("child")
    log_summary("requests=0")
    logger.debug("hidden")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO hello", "WARN careful", "ERROR child", "SUMMARY requests=0"]


def test_set_debug(capsys):
    logger = setup_logging()
    set_debug(logger)
    logger.debug("visible")
    assert capsys.readouterr().out.strip() == "DEBUG visible"


def test_formatter_appends_exception():
    formatter = LabeledFormatter()
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    text = formatter.format(record)
    assert text.startswith("ERROR failed\n")
    assert "ValueError: bad" in text
    assert LabeledFormatter.LEVEL_LABELS[SUMMARY_LEVEL] == "SUMMARY"


def test_error_record_json_line():
    rec = ErrorRecord.create(
        file="f1",
        worksheet=FILE_LEVEL,
        request="f1[S] vs f2[S]",
        error_type=RESOLUTION_FAILURE,
        message="file not found",
    )
    data = json.loads(rec.to_json_line())
    assert set(data) == ERROR_KEYS
    assert data["timestamp"].endswith("Z")
    assert data["worksheet"] == "<FILE_LEVEL>"


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    assert buf.flush() is None
    buf.append(ErrorRecord.create("f1", "S", "r1", RESOLUTION_FAILURE, "m1"))
    buf.append(ErrorRecord.create("f1", "S", "r2", RESOLUTION_FAILURE, "m2"))
    path = buf.flush()
    assert path.parent == Path("logs")
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert [json.loads(line)["request"] for line in lines] == ["r1", "r2"]
    assert len(buf) == 0


def test_error_log_buffer_appends_on_repeated_flush(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "nested")
    buf.append(ErrorRecord.create("f", "S", "r1", RESOLUTION_FAILURE, "m"))
    first = buf.flush()
    buf.append(ErrorRecord.create("f", "S", "r2", RESOLUTION_FAILURE, "m"))
    second = buf.flush()
    assert first == second
    assert len(second.read_text(encoding="utf-8").splitlines()) == 2
