import logging
import sys

from ..config import CFG


def get_logger():
    logger = logging.getLogger("cryptex")
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
        logger.setLevel(getattr(logging, CFG.log_level, logging.INFO))
    return logger
