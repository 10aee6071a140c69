import json
import logging
import time
from typing import Any, Dict, Optional

LOGGER_NAME = "tcp_probe"


def create_logger(verbosity: int = 0, log_file: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if verbosity >= 2:
        logger.setLevel(logging.DEBUG)
    elif verbosity == 1:
        logger.setLevel(logging.INFO)
    else:
        logger.setLevel(logging.WARNING)

    # Replace handlers from an earlier call instead of stacking duplicates
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    # stdout carries the report; logs go to stderr
    sh = logging.StreamHandler()

    # We write JSON ourselves; keep formatter minimal
    formatter = logging.Formatter("%(message)s")
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    logger.propagate = False
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime())


def log_event(logger: logging.Logger, event: str, fields: Dict[str, Any], level: int = logging.INFO) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"ts": now_iso(), "event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False))
