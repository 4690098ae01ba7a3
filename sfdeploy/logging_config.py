# -*- coding: utf-8 -*-
"""
Logging Configuration
=====================
Logging do sfdeploy: formato legivel no terminal ou JSON estruturado para
execucao em CI.

Usage:
    from sfdeploy.logging_config import setup_logging

    setup_logging(level="DEBUG")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    stream=None
) -> None:
    """
    Setup logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Force JSON format (SFDEPLOY_LOG_JSON if None)
        stream: Destination stream (stderr by default)
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    if json_format is None:
        json_format = os.getenv("SFDEPLOY_LOG_JSON", "").lower() in ("1", "true", "yes")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)

    if json_format:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger"}
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured: level={level}, json={json_format}")


class LogContext:
    """
    Context manager for adding deploy-session context to logs.

    Usage:
        with LogContext(tenant_id="dev", session="sfdeploy:1700000000000"):
            logger.info("deploying")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._old_factory = None

    def __enter__(self):
        self._old_factory = logging.getLogRecordFactory()
        old_factory = self._old_factory
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, *args):
        logging.setLogRecordFactory(self._old_factory)
