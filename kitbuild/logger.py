import logging
import sys
from pythonjsonlogger import jsonlogger

from kitbuild.config import settings

SERVICE_NAME = "kitbuild-analyzer"

def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger that writes one JSON object per record to stdout.
    Values passed through `extra=` become top-level keys of that object.
    """
    logger = logging.getLogger(name)

    # A module may ask for its logger more than once
    if logger.handlers:
        return logger

    logger.setLevel(settings.LOG_LEVEL.upper())
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        rename_fields={"asctime": "timestamp", "levelname": "level"},
        static_fields={"service": SERVICE_NAME},
    ))
    logger.addHandler(handler)

    return logger
