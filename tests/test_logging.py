import json
import logging

import pytest

from qrmaker.errors import DecodeError
from qrmaker.logging import AUDIT, ConsoleFormatter, JsonFormatter, audit, get_logger, setup_logging, trace


@trace(logger_name="sample")
def _double(x):
    return x * 2


@trace(logger_name="sample")
def _fails_expectedly():
    raise DecodeError("bad pixels")


@trace(logger_name="sample")
def _fails_badly():
    raise RuntimeError("boom")


def _entries(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


def test_get_logger_namespace():
    assert get_logger("overlay").name == "qrmaker.overlay"


def test_trace_logs_enter_and_done(tmp_path):
    log_file = tmp_path / "log.jsonl"
    setup_logging(level="ERROR", log_file=str(log_file))
    assert _double(21) == 42
    entries = _entries(log_file)
    assert [e["event"] for e in entries] == ["_double.enter", "_double.done"]
    assert entries[1]["ctx"]["result"] == "42"
    assert "duration_ms" in entries[1]


def test_trace_domain_error_is_warning_without_traceback(tmp_path):
    log_file = tmp_path / "log.jsonl"
    setup_logging(level="ERROR", log_file=str(log_file))
    with pytest.raises(DecodeError):
        _fails_expectedly()
    failed = _entries(log_file)[-1]
    assert failed["event"] == "_fails_expectedly.failed"
    assert failed["level"] == "WARNING"
    assert failed["ctx"] == {"error": "DecodeError", "reason": "bad pixels"}
    assert "traceback" not in failed


def test_trace_unexpected_error_has_traceback(tmp_path):
    log_file = tmp_path / "log.jsonl"
    setup_logging(level="ERROR", log_file=str(log_file))
    with pytest.raises(RuntimeError):
        _fails_badly()
    failed = _entries(log_file)[-1]
    assert failed["level"] == "ERROR"
    assert any("boom" in line for line in failed["traceback"])


def test_audit_level_and_context(tmp_path):
    log_file = tmp_path / "log.jsonl"
    setup_logging(level="ERROR", log_file=str(log_file))
    audit("thing.happened", logger=get_logger("test"), count=3)
    entry = _entries(log_file)[-1]
    assert entry["level"] == "AUDIT"
    assert entry["event"] == "thing.happened"
    assert entry["ctx"] == {"count": 3}


def test_console_level_filters(capsys):
    setup_logging(level="AUDIT")
    audit("visible.event", logger=get_logger("test"), k="v")
    get_logger("test").info("hidden message")
    err = capsys.readouterr().err
    assert "visible.event" in err and "k=v" in err
    assert "hidden message" not in err


def test_formatters_render_plain_messages():
    record = logging.LogRecord("qrmaker.x", AUDIT, "", 0, "hello %s", ("world",), None)
    assert json.loads(JsonFormatter().format(record))["msg"] == "hello world"
    line = ConsoleFormatter(color=False).format(record)
    assert "AUDIT" in line and "[qrmaker.x]" in line and "hello world" in line
