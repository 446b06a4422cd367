# src/paperportal/utils/logging_config.py
"""
File logging for the research portal.

Usage:
    from paperportal.utils.logging_config import Logger, LogFiles

    Logger.info("paper abc approved", file=LogFiles.WORKFLOW)
    Logger.error("submit failed", file=LogFiles.ERROR)

Environment:
    PAPERPORTAL_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    PAPERPORTAL_LOG_DIR: base directory for log files (default: logs/)
    PAPERPORTAL_LOG_MAX_BYTES: rotation size per file (default: 10MB)
    PAPERPORTAL_LOG_BACKUP_COUNT: rotated files to keep (default: 5)
"""

from __future__ import annotations

import inspect
import os
import threading
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import yaml

_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "paperportal.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5
DEFAULT_FORMAT = "{timestamp} [{level}] [{trace_id}] {filename}:{lineno} - {message}"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_CONFIG_FILE = Path(__file__).parent / "log_config.yaml"

_DEFAULT_FILES = {
    "workflow": "workflow/workflow.log",
    "api": "api/api.log",
    "error": "errors/error.log",
}


def _read_file_map(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    files = config.get("files") or {}
    return {str(k).lower(): str(v) for k, v in files.items()}


class _LogFilesMeta(type):
    """Allows ``LogFiles.WORKFLOW`` style access."""

    def __getattr__(cls, name: str) -> str:
        files = cls._load()
        key = name.lower()
        if key in files:
            return files[key]
        raise AttributeError(f"Log file '{name}' not found in config")


class LogFiles(metaclass=_LogFilesMeta):
    """
    Named log files from ``log_config.yaml`` (``files:`` section).

    Add a file by adding an entry to the yaml and reading it back as
    ``LogFiles.<NAME>``.
    """

    _files: Optional[Dict[str, str]] = None

    @classmethod
    def _load(cls) -> Dict[str, str]:
        if cls._files is None:
            files = dict(_DEFAULT_FILES)
            files.update(_read_file_map(LOG_CONFIG_FILE))
            cls._files = files
        return cls._files

    @classmethod
    def get(cls, name: str) -> str:
        return cls._load().get(name.lower(), f"{name}/{name}.log")


LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

_initialized = False
_config: dict = {}
_file_handlers: Dict[str, RotatingFileHandler] = {}
_write_lock = threading.Lock()


def _get_config() -> dict:
    return {
        "level": os.environ.get("PAPERPORTAL_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        "base_dir": os.environ.get("PAPERPORTAL_LOG_DIR", DEFAULT_LOG_DIR),
        "max_bytes": int(os.environ.get("PAPERPORTAL_LOG_MAX_BYTES", DEFAULT_MAX_BYTES)),
        "backup_count": int(
            os.environ.get("PAPERPORTAL_LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)
        ),
    }


def _get_file_handler(file_path: str) -> RotatingFileHandler:
    handler = _file_handlers.get(file_path)
    if handler is None:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(path),
            maxBytes=_config.get("max_bytes", DEFAULT_MAX_BYTES),
            backupCount=_config.get("backup_count", DEFAULT_BACKUP_COUNT),
            encoding="utf-8",
        )
        _file_handlers[file_path] = handler
    return handler


def _format_message(level: str, message: str, filename: str, lineno: int) -> str:
    return DEFAULT_FORMAT.format(
        timestamp=datetime.now().strftime(DEFAULT_DATE_FORMAT),
        level=level,
        trace_id=_trace_id_var.get() or "-",
        filename=filename,
        lineno=lineno,
        message=message,
    )


def _resolve_file_path(file: Optional[str]) -> str:
    base_dir = _config.get("base_dir", DEFAULT_LOG_DIR)
    return str(Path(base_dir) / (file or DEFAULT_LOG_FILE))


def _should_log(level: str) -> bool:
    current = _config.get("level", DEFAULT_LOG_LEVEL)
    return LOG_LEVELS.get(level, 0) >= LOG_LEVELS.get(current, 0)


def _write_log(level: str, message: str, file: Optional[str] = None) -> None:
    if not _should_log(level):
        return

    # skip _write_log and the public Logger method
    frame = inspect.currentframe()
    caller = frame.f_back.f_back if frame and frame.f_back else None
    filename = os.path.basename(caller.f_code.co_filename) if caller else "unknown"
    lineno = caller.f_lineno if caller else 0

    line = _format_message(level, message, filename, lineno)
    with _write_lock:
        handler = _get_file_handler(_resolve_file_path(file))
        handler.stream.write(line + "\n")
        handler.stream.flush()


class Logger:
    """
    Static file logger.

    ``Logger.init()`` is optional; the first call auto-initializes from the
    environment.
    """

    @staticmethod
    def init(
        level: Optional[str] = None,
        base_dir: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        global _initialized, _config

        if _initialized:
            return

        _config = _get_config()
        if level:
            _config["level"] = level.upper()
        if base_dir:
            _config["base_dir"] = base_dir
        if max_bytes:
            _config["max_bytes"] = max_bytes
        if backup_count:
            _config["backup_count"] = backup_count
        _initialized = True

    @staticmethod
    def _ensure_init() -> None:
        if not _initialized:
            Logger.init()

    @staticmethod
    def debug(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("DEBUG", message, file)

    @staticmethod
    def info(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("INFO", message, file)

    @staticmethod
    def warning(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("WARNING", message, file)

    @staticmethod
    def error(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("ERROR", message, file)

    @staticmethod
    def critical(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("CRITICAL", message, file)

    @staticmethod
    def set_level(level: str) -> None:
        Logger._ensure_init()
        _config["level"] = level.upper()

    @staticmethod
    def close() -> None:
        """Close file handlers and forget the config (next call re-reads env)."""
        global _initialized
        for handler in _file_handlers.values():
            handler.close()
        _file_handlers.clear()
        _initialized = False


def generate_trace_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Set (or generate) the trace id for the current request context."""
    tid = trace_id or generate_trace_id()
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def clear_trace_id() -> None:
    _trace_id_var.set(None)
