"""Logging configuration for CLI runs."""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_FILE_HANDLER_NAME = "restore_manager.file"


def configure_logging(
    log_path: Optional[Union[str, Path]] = None,
    verbose: bool = False,
    quiet_console: bool = False,
) -> None:
    """
    Configure root logging for one invocation.

    The console gets WARNING (DEBUG with verbose); the log file always gets
    INFO and above so unattended runs leave a full trail.

    Args:
        log_path: Append-only log file, or None for console only
        verbose: Enable debug output
        quiet_console: Only errors on the console (unattended runs)
    """
    console_level = logging.DEBUG if verbose else logging.WARNING
    if quiet_console and not verbose:
        console_level = logging.ERROR

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(root.handlers):
        if handler.get_name() == _FILE_HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()

    logging.basicConfig(level=console_level, format=LOG_FORMAT)
    for handler in root.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)

    if log_path is not None:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.set_name(_FILE_HANDLER_NAME)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    # Suppress noisy loggers in non-verbose mode
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
