import logging
import sys


def setup_logger(name: str = "broadcast", level: str = "INFO") -> logging.Logger:
    # Module loggers live under "broadcast.*" so configuring the root name covers them all
    logger = logging.getLogger(name)
    logger.propagate = False
    if logger.handlers:
        logger.setLevel(level)
        return logger  # avoid duplicate handlers

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s: %(message)s")
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
