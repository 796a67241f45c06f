from __future__ import annotations

import logging
import sys
import threading
from typing import Optional, TextIO

from .errors import SinkError
from .logger import log_event
from .models import ProbeOutcome, ScanReport

logger = logging.getLogger(__name__)

HEADER = "Port        Status   Service           VERSION"


def format_row(r: ProbeOutcome) -> str:
    port = f"{r.port}/{r.protocol}"
    if not r.is_open:
        return f"{port}   closed"
    return f"{port}   open   {r.service or 'unknown'}   {r.version or 'unknown'}"


def summarize(report: ScanReport) -> str:
    return f"Found {len(report.open_ports())} open {report.protocol} ports"


class ResultSink:
    """
    Single owner of the console stream and the optional output file.

    Every write goes through one lock, so lines recorded from many worker
    threads never interleave. The file is truncated when the sink opens and
    appended to for the rest of the run.
    """

    def __init__(self, path: Optional[str] = None, stream: Optional[TextIO] = None):
        self.path = path
        self.stream = stream if stream is not None else sys.stdout
        self.lines_written = 0
        self.dropped = 0
        self._lock = threading.Lock()
        self._file: Optional[TextIO] = None
        self._closed = False

        if path:
            try:
                self._file = open(path, "w", encoding="utf-8", newline="\n")
            except OSError as e:
                raise SinkError(f"Cannot open output file '{path}': {e}") from e

    def record(self, outcome: ProbeOutcome) -> None:
        self._write(format_row(outcome))

    def record_text(self, text: str) -> None:
        text = text.rstrip("\n")
        if text:
            self._write(text)

    def _write(self, line: str) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("sink already finalized")
            print(line, file=self.stream, flush=True)
            self.lines_written += 1
            if self._file is None:
                return
            try:
                self._file.write(line + "\n")
            except (OSError, ValueError) as e:
                self.dropped += 1
                log_event(logger, "sink_write_failed", {"path": self.path, "error": str(e)}, logging.ERROR)

    def finalize(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._file is None:
                return
            try:
                self._file.close()
            except OSError as e:
                log_event(logger, "sink_write_failed", {"path": self.path, "error": str(e)}, logging.ERROR)
            if self.dropped:
                logger.warning("%d line(s) could not be written to %s", self.dropped, self.path)

    def __enter__(self) -> "ResultSink":
        return self

    def __exit__(self, *exc) -> None:
        self.finalize()
