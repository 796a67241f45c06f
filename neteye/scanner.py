from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterator, Optional

from .enumeration import EnumerationDispatcher
from .inspection import DEFAULT_INSPECT_WORKERS, InspectionHook, InspectionPool
from .logger import log_event
from .models import PortSpec, ProbeOutcome, Protocol, ScanJob, ScanReport
from .output import ResultSink, summarize
from .ports import PortRange
from .probe import probe
from .targets import resolve_target

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_EVERY = 5000

ProbeFn = Callable[[str, int, Protocol, float], ProbeOutcome]


class Scanner:
    """
    Bounded-futures scanner: at most `job.concurrency` probes run at once
    and only a few times that many futures exist at any moment, so a full
    65535-port sweep never holds thousands of sockets or futures.

    Outcomes reach the sink in completion order. Each protocol's
    ScanReport keeps them sorted by port.
    """

    def __init__(
        self,
        sink: ResultSink,
        hook: Optional[InspectionHook] = None,
        dispatcher: Optional[EnumerationDispatcher] = None,
        probe_fn: ProbeFn = probe,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        show_boundaries: bool = False,
        inspect_workers: int = DEFAULT_INSPECT_WORKERS,
    ):
        self.sink = sink
        self.hook = hook
        self.dispatcher = dispatcher
        self.probe_fn = probe_fn
        self.progress_every = progress_every
        self.show_boundaries = show_boundaries
        self.address: Optional[str] = None
        self.interrupted = False
        self._stop = threading.Event()
        self._inspections: Optional[InspectionPool] = None
        if hook is not None or dispatcher is not None:
            self._inspections = InspectionPool(sink.record_text, max_workers=inspect_workers)

    def stop(self) -> None:
        """Stops dispatch of new probes; in-flight probes run to their timeout."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self, job: ScanJob) -> Dict[Protocol, ScanReport]:
        self._stop.clear()
        self.interrupted = False
        # Resolution failure aborts before any probe is dispatched
        self.address = resolve_target(job.target)
        ports = PortRange(job.start_port, job.end_port, job.protocols)
        deadline = time.monotonic() + job.deadline_s if job.deadline_s else None

        log_event(logger, "scan_started", {
            "target": job.target,
            "address": self.address,
            "ports": f"{job.start_port}-{job.end_port}",
            "protocols": [str(p) for p in ports.protocols],
            "concurrency": job.concurrency,
            "timeout_ms": job.timeout_ms,
        })

        reports: Dict[Protocol, ScanReport] = {}
        for protocol in ports.protocols:
            if self.stopped:
                break
            reports[protocol] = self.scan_protocol(job, ports, protocol, deadline)
        return reports

    def scan_protocol(
        self,
        job: ScanJob,
        ports: PortRange,
        protocol: Protocol,
        deadline: Optional[float] = None,
    ) -> ScanReport:
        address = self.address or resolve_target(job.target)
        report = ScanReport(job.target, protocol)
        total = len(ports.ports())
        boundaries = set(ports.boundaries()) if self.show_boundaries else set()

        jobs: Iterator[PortSpec] = ports.for_protocol(protocol)
        scanned = 0
        open_count = 0
        start_all = time.perf_counter()

        max_pending = max(job.concurrency * 4, 100)

        with ThreadPoolExecutor(max_workers=job.concurrency, thread_name_prefix="neteye-probe") as pool:
            pending: Dict[Future, PortSpec] = {}

            def submit_next() -> bool:
                if self._halted(deadline):
                    return False
                try:
                    spec = next(jobs)
                except StopIteration:
                    return False
                fut = pool.submit(self._guarded, deadline, address, spec.port, protocol, job.timeout_s)
                pending[fut] = spec
                return True

            # Prime the queue
            while len(pending) < max_pending and submit_next():
                pass

            while pending:
                if self.stopped:
                    self._cancel_queued(pending, protocol)
                    if not pending:
                        break
                try:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    self.interrupted = True
                    self.stop()
                    continue

                for fut in done:
                    spec = pending.pop(fut)
                    r = self._outcome(fut, address, spec)
                    if r is None:
                        # Dequeued after a stop, never probed
                        continue
                    report.add(r)

                    scanned += 1
                    if r.is_open:
                        open_count += 1
                        self.sink.record(r)
                        self._after_open(job, r)
                    elif spec.port in boundaries:
                        self.sink.record(r)

                    if self.progress_every > 0 and (scanned % self.progress_every == 0 or scanned == total):
                        elapsed = time.perf_counter() - start_all
                        rate = scanned / elapsed if elapsed > 0 else 0.0
                        logger.info("[*] %s scanned %d/%d | open=%d | %.0f probes/s",
                                    protocol, scanned, total, open_count, rate)

                # Refill queue
                while len(pending) < max_pending and submit_next():
                    pass

        report.finalize(complete=scanned == total)
        self.sink.record_text(summarize(report))
        if not report.complete:
            self.sink.record_text(f"Scan incomplete: {scanned}/{total} {protocol} ports probed")
        log_event(logger, "scan_completed", {
            "protocol": str(protocol),
            "scanned": scanned,
            "total": total,
            "open": open_count,
            "complete": report.complete,
            "elapsed_s": round(time.perf_counter() - start_all, 4),
        })
        return report

    def _halted(self, deadline: Optional[float]) -> bool:
        if deadline is not None and not self.stopped and time.monotonic() >= deadline:
            logger.warning("Scan deadline reached, no further probes dispatched")
            self.stop()
        return self.stopped

    def _guarded(self, deadline: Optional[float], address: str, port: int, protocol: Protocol,
                 timeout_s: float) -> Optional[ProbeOutcome]:
        # Queued futures re-check the stop flag before touching the network
        if self._halted(deadline):
            return None
        return self.probe_fn(address, port, protocol, timeout_s)

    def _cancel_queued(self, pending: Dict[Future, PortSpec], protocol: Protocol) -> None:
        cancelled = 0
        for fut in list(pending):
            if fut.cancel():
                del pending[fut]
                cancelled += 1
        if cancelled:
            log_event(logger, "scan_cancelled", {
                "protocol": str(protocol),
                "cancelled": cancelled,
                "in_flight": len(pending),
            }, logging.WARNING)

    def _outcome(self, fut: Future, address: str, spec: PortSpec) -> Optional[ProbeOutcome]:
        try:
            return fut.result()
        except Exception as e:
            # One failing probe must not sink the scan
            log_event(logger, "probe_failed", {
                "address": address,
                "port": spec.port,
                "protocol": str(spec.protocol),
                "error": repr(e),
            }, logging.WARNING)
            return ProbeOutcome.closed(address, spec.port, spec.protocol)

    def _after_open(self, job: ScanJob, r: ProbeOutcome) -> None:
        if self._inspections is None:
            return
        if job.inspect and self.hook is not None:
            self._inspections.submit(f"inspect {r.port}/{r.protocol}", self.hook, r.port, r.protocol)
        if self.dispatcher is not None:
            self._inspections.submit(
                f"enumerate {r.port}/{r.protocol}", self.dispatcher.dispatch, r.target, r.port, r.service
            )

    def join_inspections(self, timeout: Optional[float] = None) -> bool:
        if self._inspections is None:
            return True
        return self._inspections.join(timeout)

    @property
    def inspection_failures(self) -> int:
        return self._inspections.failures if self._inspections else 0
