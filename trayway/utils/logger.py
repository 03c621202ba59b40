import logging
import sys

from trayway.config import settings


def _build_handlers() -> list:
    handlers = [logging.StreamHandler(sys.stdout)]
    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_path, mode="a", encoding="utf-8"))
    except OSError:
        # Read-only or missing home: console logging only
        pass
    return handlers


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=_build_handlers(),
)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
