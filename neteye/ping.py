from __future__ import annotations

import logging
import math
import platform
import subprocess
from typing import List

from .errors import NeteyeError

logger = logging.getLogger(__name__)


def build_ping_command(host: str, timeout_s: float = 2.0) -> List[str]:
    if platform.system() == "Windows":
        # -w takes milliseconds on Windows
        return ["ping", "-n", "1", "-w", str(int(timeout_s * 1000)), host]
    return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout_s))), host]


def ping_check(host: str, timeout_s: float = 2.0) -> bool:
    """
    Sends one echo request with the system ping. Returns whether it was
    answered; raises NeteyeError if ping itself cannot be run.
    """
    cmd = build_ping_command(host, timeout_s)
    logger.debug("RUN: %s", " ".join(cmd))
    try:
        res = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_s + 5)
    except FileNotFoundError as e:
        raise NeteyeError("ping executable not found") from e
    except subprocess.TimeoutExpired:
        return False
    return res.returncode == 0
