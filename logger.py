"""Service logging."""

import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_console = logging.StreamHandler()
_console.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach the console handler to the root logger once; later calls only adjust the level."""
    logger = logging.getLogger()
    logger.setLevel(level.upper())
    if _console in logger.handlers:
        return logger

    logger.addHandler(_console)
    return logger
