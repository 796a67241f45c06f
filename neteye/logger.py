import json
import logging
import sys
import time
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("neteye")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Clear any existing handlers so repeated setup never duplicates output
    logger.handlers.clear()

    # stdout carries result lines only
    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(sh)
    logger.propagate = False
    return logger


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime())


def log_event(logger: logging.Logger, event: str, fields: Dict[str, Any], level: int = logging.INFO) -> None:
    payload = {"ts": now_iso(), "event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
