"""Logging setup shared by the whole backend

One named logger with a stdout handler, level taken from LOG_LEVEL
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("storefront")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(console_handler)

# Uvicorn configures the root logger too, avoid printing everything twice
logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    # Child loggers inherit the handler above
    if name:
        return logging.getLogger(f"storefront.{name}")
    return logger
