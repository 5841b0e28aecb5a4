import logging
import sys

from loguru import logger

from common.config import config

# Loguru config
logger.remove()
logger.add(sys.stderr, format=config.log_format, level=config.log_level, colorize=True)

# Azure SDK loggers are stdlib loggers and very chatty at INFO (AMQP frames, link state)
for sdk_logger in ("azure.core", "azure.servicebus", "azure.servicebus._pyamqp"):
    logging.getLogger(sdk_logger).setLevel(config.azure_sdk_log_level)


def get_logger(name: str | None = None):
    """Return the shared loguru logger, bound to `name` when given."""
    return logger.bind(name=name) if name else logger
