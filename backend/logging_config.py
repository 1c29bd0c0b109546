"""Logging configuration: JSON lines for the service, plain text for the CLI."""

import logging
import sys
from pythonjsonlogger import jsonlogger

SERVER_LOGGERS = ("uvicorn.access", "uvicorn.error")


def _level(name):
    return getattr(logging, str(name).upper(), logging.INFO)


def setup_logging(log_level: str = "INFO", json_format: bool = True):
    """Route the root logger, and uvicorn's loggers, to one stdout handler.

    With json_format the records are rendered by JsonFormatter with
    `timestamp` and `level` keys; otherwise a short text line is used.
    """
    if json_format:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stdout if json_format else sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(log_level))
    root_logger.handlers = [handler]

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False
        server_logger.setLevel(logging.INFO if name.endswith("access") else _level(log_level))

    return root_logger
