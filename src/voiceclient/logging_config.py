"""Logging configuration for voiceclient."""
import logging
import sys
from typing import Optional, Union


def setup_logger(
    name: str,
    level: Union[int, str] = logging.INFO,
    format_string: Optional[str] = None
) -> logging.Logger:
    """Set up a logger with the specified configuration."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Child loggers carry their own handler, so don't bubble up to "voiceclient"
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)

        if format_string is None:
            format_string = (
                "%(asctime)s - %(name)s - %(levelname)s - "
                "[%(filename)s:%(lineno)d] - %(message)s"
            )

        handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(handler)

    return logger


def set_level(level: Union[int, str]) -> None:
    """Change the level of every voiceclient logger created so far."""
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if name == "voiceclient" or name.startswith("voiceclient."):
            if isinstance(candidate, logging.Logger):
                candidate.setLevel(level)
                for handler in candidate.handlers:
                    handler.setLevel(level)


# Default logger
logger = setup_logger("voiceclient")
