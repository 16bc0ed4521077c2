"""
Logging helpers.

The CLI keeps the console for results and errors, so detailed logs go to a
stable per-user file location. Library modules only create module loggers;
handlers are attached here, once, by the entrypoint.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

ENV_LOG_LEVEL = "PIXELEXTRUDE_LOG_LEVEL"


def default_log_dir() -> Path:
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / "PixelExtrude" / "logs"

    xdg_state_home = os.environ.get("XDG_STATE_HOME")
    if xdg_state_home:
        return Path(xdg_state_home) / "pixelextrude" / "logs"

    return Path.home() / ".local" / "state" / "pixelextrude" / "logs"


def _parse_log_level(level: str | int) -> int:
    if isinstance(level, int):
        return int(level)
    value = str(level).strip().upper()
    if not value:
        return logging.INFO
    parsed = getattr(logging, value, logging.INFO)
    return parsed if isinstance(parsed, int) else logging.INFO


def setup_logging(
    *,
    log_level: str | int = "INFO",
    log_dir: Optional[str | Path] = None,
    filename: str = "pixelextrude.log",
) -> Optional[Path]:
    """
    Configure root logging to a UTF-8 file.

    Idempotent: if a FileHandler is already attached, its path is returned
    and no new handler is added. Returns None when the log file cannot be
    created.
    """
    root = logging.getLogger()

    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    level = _parse_log_level(os.environ.get(ENV_LOG_LEVEL) or log_level)
    root.setLevel(level)

    resolved_dir = Path(log_dir) if log_dir is not None else default_log_dir()
    try:
        resolved_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None

    log_path = resolved_dir / filename

    fmt = "%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    try:
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
    except OSError:
        return None
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    root.info("Logging initialized: %s (level=%s)", log_path, logging.getLevelName(level))
    return log_path


def format_exception_message(prefix: str, message: str, *, log_path: Optional[Path]) -> str:
    if log_path is None:
        return f"{prefix}: {message}"
    return f"{prefix}: {message}\n(log file: {log_path})"

