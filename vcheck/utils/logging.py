import logging
import sys

from vcheck.config import settings

_handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
if settings.LOG_FILE:
    _handlers.append(logging.FileHandler(settings.LOG_FILE, mode="a", encoding="utf-8"))

# Configure standard logger
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=_handlers,
)


def get_logger(name: str):
    return logging.getLogger(name)
