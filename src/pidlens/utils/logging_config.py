# src/pidlens/utils/logging_config.py
"""
Audit logging to named rotating files.

Usage:
    from pidlens.utils.logging_config import Logger, LogFiles

    Logger.info("Entity cache hit", file=LogFiles.CACHE)
    Logger.error("Store unavailable", file=LogFiles.ERROR)

Every line carries the trace id of the current task (see ``set_trace_id``),
so all lines written during one ``get_entity`` call can be correlated.

Configuration via environment variables:
    PIDLENS_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    PIDLENS_LOG_DIR: Base directory for log files (default: logs/)
    PIDLENS_LOG_MAX_BYTES: Max size per log file in bytes (default: 10MB)
    PIDLENS_LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
"""

from __future__ import annotations

import inspect
import logging
import os
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import yaml

_trace_id_var: ContextVar[Optional[str]] = ContextVar("pidlens_trace_id", default=None)

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "pidlens.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5
LINE_FORMAT = "{timestamp} [{level}] [{trace_id}] {filename}:{lineno} - {message}"
LOG_CONFIG_FILE = Path(__file__).parent / "log_config.yaml"

_DEFAULT_FILES = {
    "cache": "cache/cache.log",
    "resolver": "resolver/resolver.log",
    "error": "errors/error.log",
}


class _LogFilesMeta(type):
    """Allows ``LogFiles.CACHE`` style attribute access."""

    def __getattr__(cls, name: str) -> str:
        files = cls._files_map()
        key = name.lower()
        if key in files:
            return files[key]
        raise AttributeError(f"Log file '{name}' not found in config")


class LogFiles(metaclass=_LogFilesMeta):
    """Log file paths declared in ``log_config.yaml`` (falls back to built-in defaults)."""

    _files: Optional[Dict[str, str]] = None

    @classmethod
    def _files_map(cls) -> Dict[str, str]:
        if cls._files is None:
            files = dict(_DEFAULT_FILES)
            if LOG_CONFIG_FILE.exists():
                with open(LOG_CONFIG_FILE, "r", encoding="utf-8") as f:
                    config = yaml.safe_load(f) or {}
                files.update(config.get("files") or {})
            cls._files = files
        return cls._files

    @classmethod
    def get(cls, name: str) -> str:
        return cls._files_map().get(name.lower(), f"{name}/{name}.log")


_config: Dict[str, object] = {}
_handlers: Dict[str, RotatingFileHandler] = {}


def _env_config() -> Dict[str, object]:
    return {
        "level": os.environ.get("PIDLENS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        "base_dir": os.environ.get("PIDLENS_LOG_DIR", DEFAULT_LOG_DIR),
        "max_bytes": int(os.environ.get("PIDLENS_LOG_MAX_BYTES", DEFAULT_MAX_BYTES)),
        "backup_count": int(os.environ.get("PIDLENS_LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)),
    }


def _handler_for(file: Optional[str]) -> RotatingFileHandler:
    path = Path(str(_config["base_dir"])) / (file or DEFAULT_LOG_FILE)
    key = str(path)
    if key not in _handlers:
        path.parent.mkdir(parents=True, exist_ok=True)
        _handlers[key] = RotatingFileHandler(
            filename=key,
            maxBytes=int(_config["max_bytes"]),
            backupCount=int(_config["backup_count"]),
            encoding="utf-8",
        )
    return _handlers[key]


def _write(level: str, message: str, file: Optional[str]) -> None:
    if not _config:
        Logger.init()
    threshold = logging.getLevelName(str(_config["level"]))
    if not isinstance(threshold, int):
        threshold = logging.INFO
    if logging.getLevelName(level) < threshold:
        return

    # two frames up: _write <- Logger.<level> <- caller
    frame = inspect.currentframe()
    caller = frame.f_back.f_back if frame and frame.f_back else None
    filename = os.path.basename(caller.f_code.co_filename) if caller else "unknown"
    lineno = caller.f_lineno if caller else 0

    line = LINE_FORMAT.format(
        timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        level=level,
        trace_id=_trace_id_var.get() or "-",
        filename=filename,
        lineno=lineno,
        message=message,
    )
    handler = _handler_for(file)
    # emit through the handler so rotation is honoured
    handler.emit(logging.makeLogRecord({"msg": line, "levelname": level}))


class Logger:
    """Static facade over the named rotating files."""

    @staticmethod
    def init(
        level: Optional[str] = None,
        base_dir: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        _config.clear()
        _config.update(_env_config())
        if level:
            _config["level"] = level.upper()
        if base_dir:
            _config["base_dir"] = base_dir
        if max_bytes:
            _config["max_bytes"] = max_bytes
        if backup_count:
            _config["backup_count"] = backup_count
        Logger.close()

    @staticmethod
    def debug(message: str, file: Optional[str] = None) -> None:
        _write("DEBUG", message, file)

    @staticmethod
    def info(message: str, file: Optional[str] = None) -> None:
        _write("INFO", message, file)

    @staticmethod
    def warning(message: str, file: Optional[str] = None) -> None:
        _write("WARNING", message, file)

    @staticmethod
    def error(message: str, file: Optional[str] = None) -> None:
        _write("ERROR", message, file)

    @staticmethod
    def close() -> None:
        for handler in _handlers.values():
            handler.close()
        _handlers.clear()


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Bind a trace id (generated when omitted) to the current task and return it."""
    tid = trace_id or f"pid-{uuid.uuid4().hex[:12]}"
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def clear_trace_id() -> None:
    _trace_id_var.set(None)
