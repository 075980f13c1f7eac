"""
Rotating file logging for the blueprint server (tmb_server).

Provision and destroy steps are always written to a log file so failed
provisions can be diagnosed afterwards. The file goes to the first writable
location among TMB_LOG_FILE, the log_dir argument, TMB_LOG_DIR and
<tmp>/tangle_mcp/logs/.

Call initialize_from_env() once at startup; the app lifespan does this when it
owns the process.

Environment variables (optional):
- TMB_LOG_FILE, TMB_LOG_DIR
- TMB_LOG_MAX_BYTES (default 10485760), TMB_LOG_BACKUP_COUNT (default 10)
- LOG_LEVEL (default INFO)
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Union

__all__ = [
    "initialize_from_env",
    "setup_logging",
]

APP_LOGGER_NAME = "tangle_mcp"

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s pid=%(process)d %(filename)s:%(lineno)d - %(message)s"
_CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# third-party loggers that drown out provisioning messages at INFO
_NOISY_LOGGERS = ("docker", "urllib3", "requests", "uvicorn.access")


def _pick_log_path(service_name: str, log_dir: Optional[Union[str, Path]]) -> Path:
    """
    First candidate that can be opened for appending.

    Raises:
        RuntimeError listing every attempt when none is writable.
    """
    file_name = f"{service_name}.log"
    candidates: List[Path] = []
    if os.getenv("TMB_LOG_FILE"):
        candidates.append(Path(os.environ["TMB_LOG_FILE"]).expanduser())
    for directory in (log_dir, os.getenv("TMB_LOG_DIR")):
        if directory:
            candidates.append(Path(directory).expanduser() / file_name)
    candidates.append(Path(tempfile.gettempdir()) / "tangle_mcp" / "logs" / file_name)

    failures: List[str] = []
    for path in candidates:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
        except OSError as e:
            failures.append(f"{path}: {e}")
            continue
        return path
    raise RuntimeError("No writable log location: " + "; ".join(failures))


def setup_logging(
    service_name: str = APP_LOGGER_NAME,
    *,
    level: Optional[Union[int, str]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    add_console: bool = False,
) -> Path:
    """
    Attach a RotatingFileHandler to the root logger and set the app logger level.

    Returns the active log file path.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
    if not isinstance(level, int):
        level = logging.INFO

    log_path = _pick_log_path(service_name, log_dir)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    resolved = log_path.resolve()
    if not any(Path(getattr(h, "baseFilename", "")).resolve() == resolved for h in root.handlers
               if getattr(h, "baseFilename", None)):
        handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=int(os.getenv("TMB_LOG_MAX_BYTES", str(10 * 1024 * 1024))),
            backupCount=int(os.getenv("TMB_LOG_BACKUP_COUNT", "10")),
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        root.addHandler(handler)

    if add_console and not any(type(h) is logging.StreamHandler for h in root.handlers):
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        root.addHandler(console)

    logging.getLogger(APP_LOGGER_NAME).setLevel(level)
    lib_level = logging.INFO if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(lib_level)

    logging.getLogger(APP_LOGGER_NAME).info(
        "Logging initialized: file=%s level=%s", log_path, logging.getLevelName(level)
    )
    return log_path


def initialize_from_env(service_name: str = APP_LOGGER_NAME) -> Path:
    """
    Startup initializer: file logging plus a console handler.
    """
    return setup_logging(service_name=service_name, add_console=True)
