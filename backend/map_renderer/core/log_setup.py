"""Root logger configuration for the service."""

import logging
import pathlib

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO", log_file: pathlib.Path | None = None) -> None:
    """Configure root logging to the console and optionally a file.

    Args:
        level: Logging level name such as "INFO" or "DEBUG". Unknown names
            fall back to INFO.
        log_file: Optional file that receives the same records. Its parent
            directory is created if needed.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=resolved, format=LOG_FORMAT, handlers=handlers, force=True)
