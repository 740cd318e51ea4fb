"""qrmaker structured logging: audit events, JSON log files and call tracing."""

import functools
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone

# Custom AUDIT level (between WARNING=30 and ERROR=40)
AUDIT = 35
logging.addLevelName(AUDIT, "AUDIT")

ROOT_LOGGER = "qrmaker"


def _truncate(value: object, max_len: int = 80) -> str:
    s = str(value)
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _timestamp(record: logging.LogRecord, fmt: str) -> str:
    return datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(fmt)[:-3]


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for --log-file."""

    def format(self, record):
        entry = {
            "ts": _timestamp(record, "%Y-%m-%dT%H:%M:%S.%f") + "Z",
            "level": record.levelname,
            "src": record.name,
        }
        event = getattr(record, "event", None)
        if event:
            entry["event"] = event
        else:
            entry["msg"] = record.getMessage()
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = round(record.duration_ms, 2)
        if getattr(record, "ctx", None):
            entry["ctx"] = record.ctx
        if record.exc_info and record.exc_info[1]:
            entry["traceback"] = traceback.format_exception(*record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console output; colored only when writing to a tty."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "AUDIT": "\033[35m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record):
        level = f"{record.levelname:7s}"
        if self.color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        parts = [_timestamp(record, "%H:%M:%S.%f"), level, f"[{record.name}]"]

        event = getattr(record, "event", None)
        if event:
            parts.append(event)
        else:
            parts.append(record.getMessage())

        if hasattr(record, "duration_ms"):
            parts.append(f"({record.duration_ms:.1f}ms)")

        ctx = getattr(record, "ctx", None)
        if ctx:
            parts.append(" ".join(f"{k}={_truncate(v)}" for k, v in ctx.items()))

        if record.exc_info and record.exc_info[1]:
            parts.append(f"\n{''.join(traceback.format_exception(*record.exc_info))}")

        return " ".join(parts)


def setup_logging(level: str = "ERROR", log_file: str | None = None, json_format: bool = False):
    """Configure the root qrmaker logger.

    Console output always goes to stderr so that stdout stays reserved for the
    command summary.

    Args:
        level: Log level name (DEBUG, INFO, AUDIT, WARNING, ERROR).
        log_file: If set, additionally write JSON logs to this path at DEBUG.
        json_format: Use JSON on the console too.
    """
    root = logging.getLogger(ROOT_LOGGER)
    console_level = logging.getLevelName(level.upper())
    if not isinstance(console_level, int):
        console_level = logging.ERROR
    root.handlers.clear()
    root.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    if json_format:
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(ConsoleFormatter(color=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(JsonFormatter())
        root.addHandler(fh)
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(console_level)


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger scoped under the qrmaker namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{module_name}")


def _emit(log: logging.Logger, level: int, event: str, ctx: dict,
          duration_ms: float | None = None, exc_info=None):
    if not log.isEnabledFor(level):
        return
    record = log.makeRecord(
        name=log.name, level=level, fn="", lno=0,
        msg="", args=(), exc_info=exc_info,
    )
    record.event = event
    record.ctx = ctx
    if duration_ms is not None:
        record.duration_ms = duration_ms
    log.handle(record)


def audit(event: str, logger: logging.Logger | None = None, **context):
    """Emit an AUDIT-level structured log entry.

    Args:
        event: Machine-readable event tag (e.g., "overlay.composited").
        logger: Logger to use. Defaults to the qrmaker root.
        **context: Key-value pairs for the event context.
    """
    _emit(logger or logging.getLogger(ROOT_LOGGER), AUDIT, event, context)


def _summarize(value) -> str:
    if isinstance(value, (str, int, float, bool)):
        return _truncate(repr(value), 80)
    if isinstance(value, (bytes, bytearray)):
        return f"{type(value).__name__}[{len(value)}]"
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}[{len(value)}]"
    if hasattr(value, "size") and hasattr(value, "mode"):
        return f"<{type(value).__name__} {value.mode} {value.size[0]}x{value.size[1]}>"
    return type(value).__name__


def trace(func=None, *, logger_name: str | None = None):
    """Decorator that logs function entry/exit with timing.

    - DEBUG on entry with arguments
    - INFO on exit with duration and a result summary
    - WARNING on qrmaker errors (expected failures, no traceback)
    - ERROR on any other exception, with traceback
    """
    from qrmaker.errors import QRMakerError

    def decorator(fn):
        _logger_name = logger_name or fn.__module__.replace(f"{ROOT_LOGGER}.", "")
        log = get_logger(_logger_name)

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            fn_name = fn.__name__

            if log.isEnabledFor(logging.DEBUG):
                safe_args = [_summarize(a) for a in args]
                safe_kwargs = {k: _summarize(v) for k, v in kwargs.items()}
                _emit(log, logging.DEBUG, f"{fn_name}.enter",
                      {"args": safe_args, "kwargs": safe_kwargs})

            start = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except QRMakerError as exc:
                elapsed = (time.perf_counter() - start) * 1000
                _emit(log, logging.WARNING, f"{fn_name}.failed",
                      {"error": type(exc).__name__, "reason": str(exc)}, elapsed)
                raise
            except Exception:
                elapsed = (time.perf_counter() - start) * 1000
                _emit(log, logging.ERROR, f"{fn_name}.error",
                      {"function": fn_name}, elapsed, exc_info=sys.exc_info())
                raise

            elapsed = (time.perf_counter() - start) * 1000
            _emit(log, logging.INFO, f"{fn_name}.done", {"result": _summarize(result)}, elapsed)
            return result

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
