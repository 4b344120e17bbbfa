"""Logging configuration for the coffeebreak CLI.

The ``logging.*`` settings arrive as loose strings (YAML, .env, environment),
so each one is resolved here before the root logger is rebuilt: level names
become levels, a broken format string falls back to the default, and a log
file path is expanded and its directory created.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

def resolve_log_level(level: Union[int, str, None], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Turns a level name like 'debug' (or a number) into a logging level."""
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, str):
        resolved = getattr(logging, level.strip().upper(), None)
        if isinstance(resolved, int):
            return resolved
    return default

def resolve_log_format(log_format: Optional[str]) -> logging.Formatter:
    """Builds a '%'-style Formatter, or the default one if the format is unusable."""
    if not log_format:
        return logging.Formatter(DEFAULT_LOG_FORMAT)
    try:
        return logging.Formatter(log_format, validate=True)
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid log format {log_format!r} ({e}); using the default.")
        return logging.Formatter(DEFAULT_LOG_FORMAT)

def resolve_log_file(log_file: Optional[str]) -> Optional[Path]:
    """Expands '~' in a log file path and creates its directory.

    Returns:
        The usable path, or None when no file is configured or the directory
        cannot be created.
    """
    if not log_file or not str(log_file).strip():
        return None
    path = Path(str(log_file).strip()).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create log directory {path.parent}: {e}")
        return None
    return path

def setup_logging(
    log_level: Union[int, str, None] = DEFAULT_LOG_LEVEL,
    log_format: Optional[str] = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None
) -> List[logging.Handler]:
    """Rebuilds the root logger's handlers from raw settings values.

    Args:
        log_level: Level or level name; unknown names mean INFO.
        log_format: '%'-style format string.
        log_file: Optional path for a second, file based handler.

    Returns:
        The handlers now attached to the root logger.
    """
    level = resolve_log_level(log_level)
    formatter = resolve_log_format(log_format)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout belongs to the rich console display
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    path = resolve_log_file(log_file)
    if path is not None:
        try:
            handlers.append(logging.FileHandler(path, encoding='utf-8'))
        except OSError as e:
            logger.error(f"Failed to open log file {path}: {e}")

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}, file={path}")
    return handlers
