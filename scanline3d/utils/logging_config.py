"""Logging setup shared by the render CLIs and tests.

Provides:
    - setup_logging(): console + optional file handler (plain, size- or
      time-rotated), human or JSON-lines layout
    - configure_from_settings(): same, driven by a validated ``logging:``
      config section
    - Context fields (app, script, frame) appended to every record:
      push_context / pop_context for long-lived fields, log_context for
      fields scoped to a block

Line layouts:
    human  2026-10-17T13:45:12.345Z | INFO     | app=render script=scene.dw | Saved out.png
    json   {"t": "2026-10-17T13:45:12.345000+00:00", "lvl": "INFO", "app": "render", "msg": "..."}

Invariants:
    - Calling setup_logging() again replaces the handlers it installed
      earlier; handlers added by anything else are left alone.
    - Timestamps are UTC.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

_fields: contextvars.ContextVar = contextvars.ContextVar('scanline3d_log_fields', default={})

# Handlers installed by setup_logging(), removed on the next call
_installed: List[logging.Handler] = []


# =============================================================================
# Formatting
# =============================================================================

class ContextFormatter(logging.Formatter):
    """Render records with the active context fields.

    Parameters
    ----------
    layout : str
        "human" (pipe-separated, optionally colored) or "json" (one object
        per line)
    use_color : bool
        Color the level name; ignored unless stderr is a TTY
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }

    def __init__(self, layout: str = "human", use_color: bool = True):
        super().__init__()
        if layout not in ("human", "json"):
            raise ValueError(f"Unknown log layout '{layout}', expected 'human' or 'json'")
        self.layout = layout
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        fields = _fields.get()
        if self.layout == "json":
            return self._json_line(record, ts, fields)
        return self._human_line(record, ts, fields)

    def _json_line(self, record, ts, fields) -> str:
        entry = {'t': ts.isoformat(), 'lvl': record.levelname, 'name': record.name,
                 'pid': os.getpid(), **fields, 'msg': record.getMessage()}
        if record.exc_info:
            entry['exc'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)

    def _human_line(self, record, ts, fields) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}\033[0m"

        cols = [ts.strftime('%Y-%m-%dT%H:%M:%S.') + f"{ts.microsecond // 1000:03d}Z", level]
        if fields:
            cols.append(' '.join(f"{k}={v}" for k, v in fields.items()))
        cols.append(record.getMessage())
        line = ' | '.join(cols)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


# =============================================================================
# Handlers
# =============================================================================

def _file_handler(log_file: str, rotate: Optional[Dict[str, Any]]) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    if not rotate:
        return logging.FileHandler(log_file)

    mode = rotate.get('mode', 'size')
    if mode == 'size':
        return logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=rotate.get('max_bytes', 5_000_000),
            backupCount=rotate.get('backup_count', 3),
        )
    if mode == 'time':
        return logging.handlers.TimedRotatingFileHandler(
            log_file,
            when=rotate.get('when', 'D'),
            interval=rotate.get('interval', 1),
            backupCount=rotate.get('backup_count', 7),
            utc=True,
        )
    raise ValueError(f"Unknown rotation mode '{mode}', expected 'size' or 'time'")


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    quiet_libs: Iterable[str] = ("PIL",),
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Configure the root logger.

    Parameters
    ----------
    log_level : str
        Level name, case-insensitive
    log_file : str, optional
        Also log to this file (parent directories are created)
    json : bool
        JSON-lines layout for the file handler; the console stays human
    color : bool
        Colored level names on the console
    to_stderr : bool
        Install the console handler
    rotate : dict, optional
        ``{"mode": "size", "max_bytes": ..., "backup_count": ...}`` or
        ``{"mode": "time", "when": "D", "interval": 1, "backup_count": ...}``
    quiet_libs : iterable of str
        Loggers capped at WARNING (Pillow's plugin loader is chatty at DEBUG)
    context : dict, optional
        Fields pushed before returning, e.g. ``{"app": "render"}``

    Returns
    -------
    dict
        ``{"handlers": [...]}``, the handlers now installed

    Raises
    ------
    ValueError
        Unknown level name or rotation mode
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", use_color=color))
        handlers.append(console)
    if log_file:
        file_handler = _file_handler(log_file, rotate)
        file_handler.setFormatter(ContextFormatter("json" if json else "human", use_color=False))
        handlers.append(file_handler)

    root = logging.getLogger()
    while _installed:
        old = _installed.pop()
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)
    _installed.extend(handlers)
    root.setLevel(level)

    for lib in quiet_libs:
        logging.getLogger(lib).setLevel(logging.WARNING)
    logging.captureWarnings(True)

    if context:
        push_context(**context)
    return {'handlers': handlers}


def configure_from_settings(settings, app: str, verbose: bool = False) -> Dict[str, Any]:
    """setup_logging() from a ``LoggingSettings`` model; ``verbose`` forces DEBUG."""
    return setup_logging(
        "DEBUG" if verbose else settings.level,
        settings.file,
        json=settings.json_format,
        rotate=settings.rotate.model_dump() if settings.rotate is not None else None,
        context={'app': app},
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def shutdown() -> None:
    """Flush and close all handlers at the end of main()."""
    logging.shutdown()


# =============================================================================
# Context fields
# =============================================================================

def push_context(**fields) -> None:
    """Attach fields to every following record, e.g. ``push_context(app="orbit")``."""
    _fields.set({**_fields.get(), **fields})


def pop_context(keys: Optional[Iterable[str]] = None) -> None:
    """Drop the named fields, or all of them when ``keys`` is None."""
    if keys is None:
        _fields.set({})
        return
    remaining = dict(_fields.get())
    for key in keys:
        remaining.pop(key, None)
    _fields.set(remaining)


def get_context() -> Dict[str, Any]:
    return dict(_fields.get())


@contextmanager
def log_context(**fields):
    """Attach fields for the duration of a block, then restore the previous set.

    >>> with log_context(frame=3):
    ...     logger.info("rendered")   # ... | app=orbit frame=3 | rendered
    """
    token = _fields.set({**_fields.get(), **fields})
    try:
        yield
    finally:
        _fields.reset(token)
