"""
Post-discovery inspection of open ports.

A hook takes (port, protocol) and returns free-form text. Hooks run on a
small tracked pool off the scanning path; the scheduler joins them before
it reports the run as finished.
"""
from __future__ import annotations

import logging
import platform
import subprocess
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Set

import psutil

from .logger import log_event
from .models import Protocol

logger = logging.getLogger(__name__)

InspectionHook = Callable[[int, Protocol], str]

DEFAULT_INSPECT_WORKERS = 4
COMMAND_TIMEOUT_S = 10.0


def _process_name(pid: Optional[int]) -> str:
    if not pid:
        return "?"
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return "?"


def _fmt_addr(addr) -> str:
    if not addr:
        return "*"
    return f"{addr.ip}:{addr.port}"


class SocketTableInspector:
    """Looks the port up in the local socket table."""

    def __call__(self, port: int, protocol: Protocol) -> str:
        rows: List[str] = []
        for conn in psutil.net_connections(kind=protocol.value):
            if not conn.laddr or conn.laddr.port != port:
                continue
            rows.append(
                f"{protocol} {_fmt_addr(conn.laddr)} -> {_fmt_addr(conn.raddr)} "
                f"{conn.status} pid={conn.pid or '?'} ({_process_name(conn.pid)})"
            )
        if not rows:
            return f"No local socket owns {port}/{protocol}"
        return "\n".join([f"Inspect {port}/{protocol}:"] + rows)


class CommandInspector:
    """Asks lsof (netstat on Windows) who owns the port."""

    def __init__(self, timeout_s: float = COMMAND_TIMEOUT_S):
        self.timeout_s = timeout_s
        self.windows = platform.system() == "Windows"

    def build_command(self, port: int, protocol: Protocol) -> List[str]:
        if self.windows:
            return ["netstat", "-ano", "-p", protocol.value.upper()]
        return ["lsof", "-n", "-P", f"-i{protocol}:{port}"]

    def __call__(self, port: int, protocol: Protocol) -> str:
        cmd = self.build_command(port, protocol)
        logger.debug("RUN: %s", " ".join(cmd))
        res = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout_s)
        out = res.stdout
        if self.windows:
            out = "\n".join(line for line in out.splitlines() if f":{port} " in line)
        out = out.strip()
        if not out:
            return f"No local process found for {port}/{protocol}"
        return f"Inspect {port}/{protocol}:\n{out}"


INSPECTORS = {
    "socket-table": SocketTableInspector,
    "lsof": CommandInspector,
}


class InspectionPool:
    """
    Runs hook calls on background workers and keeps every future so the
    caller can join them. Results and failures are handed to the callbacks;
    nothing raised by a hook escapes the pool.
    """

    def __init__(
        self,
        on_result: Callable[[str], None],
        max_workers: int = DEFAULT_INSPECT_WORKERS,
    ):
        self.on_result = on_result
        self.failures = 0
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="neteye-inspect")
        self._futures: Set[Future] = set()

    def submit(self, label: str, fn: Callable[..., Optional[str]], *args) -> Future:
        fut = self._executor.submit(self._run, label, fn, *args)
        self._futures.add(fut)
        return fut

    def _run(self, label: str, fn: Callable[..., Optional[str]], *args) -> None:
        try:
            text = fn(*args)
            if text:
                self.on_result(text)
        except Exception as e:
            with self._lock:
                self.failures += 1
            log_event(logger, "inspection_failed", {"task": label, "error": repr(e)}, logging.WARNING)

    @property
    def pending(self) -> int:
        return sum(1 for f in self._futures if not f.done())

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Waits for every submitted task. Returns False if some were still
        running when the timeout expired; those are abandoned.
        """
        _, not_done = wait(self._futures, timeout=timeout)
        if not_done:
            logger.warning("%d inspection task(s) still running, abandoning", len(not_done))
            self._executor.shutdown(wait=False, cancel_futures=True)
            return False
        self._executor.shutdown(wait=True)
        return True
