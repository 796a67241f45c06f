from __future__ import annotations

import argparse
import logging
import sys
import time

from .enumeration import EnumerationDispatcher
from .errors import ConfigurationError, NeteyeError, ResolutionError, SinkError
from .inspection import INSPECTORS
from .logger import setup_logging
from .models import Protocol, ScanJob, default_concurrency
from .output import HEADER, ResultSink
from .ping import ping_check
from .ports import parse_port_range
from .scanner import DEFAULT_PROGRESS_EVERY, Scanner
from .targets import resolve_target

DEFAULT_ADDRESS = "127.0.0.1"
DEFAULT_START_PORT = 1
DEFAULT_END_PORT = 65535
DEFAULT_TIMEOUT_MS = 3000
INSPECTION_JOIN_TIMEOUT_S = 30.0
EXIT_INCOMPLETE = 3

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="neteye",
        description="A multi-threaded TCP/UDP port scanner and service detection utility.",
    )
    p.add_argument("-a", "--address", default=DEFAULT_ADDRESS, help="IP address or hostname to scan")
    p.add_argument("-s", "--start-port", type=int, default=DEFAULT_START_PORT, help="Port number to start scanning from")
    p.add_argument("-e", "--end-port", type=int, default=DEFAULT_END_PORT, help="Port number to end scanning at")
    p.add_argument("--ports", help="Port range as START-END (overrides --start-port/--end-port)")
    p.add_argument("-T", "--tcp", action="store_true", help="Enable TCP port scanning (default if no protocol given)")
    p.add_argument("-U", "--udp", action="store_true", help="Enable UDP port scanning")
    p.add_argument("-v", "--verbose", action="store_true", help="Print detailed output for the scan process")
    p.add_argument("-i", "--inspect", action="store_true", help="Inspect open ports for more details")
    p.add_argument("--inspector", choices=sorted(INSPECTORS), default="socket-table",
                   help="How open ports are inspected (default: socket-table)")
    p.add_argument("--enumerate", action="store_true", help="Report the enumeration routine for each open service")
    p.add_argument("-p", "--ping-check", action="store_true", help="Ping the address before scanning")
    p.add_argument("-o", "--output", help="Output file to save results (overwritten)")
    p.add_argument("-j", "--threads", type=int, default=None,
                   help="Number of probes in flight (default: CPU count)")
    p.add_argument("-t", "--timeout", type=int, default=DEFAULT_TIMEOUT_MS,
                   help="Timeout in milliseconds for each port check (default: 3000)")
    p.add_argument("--deadline", type=float, default=None, help="Stop dispatching new probes after this many seconds")
    p.add_argument("--progress-every", type=int, default=DEFAULT_PROGRESS_EVERY,
                   help="Progress log interval in probes (default: 5000)")
    return p


def build_job(args: argparse.Namespace) -> ScanJob:
    start, end = args.start_port, args.end_port
    if args.ports:
        start, end = parse_port_range(args.ports)

    protocols = set()
    if args.tcp or not args.udp:
        protocols.add(Protocol.TCP)
    if args.udp:
        protocols.add(Protocol.UDP)

    return ScanJob(
        target=args.address,
        start_port=start,
        end_port=end,
        protocols=frozenset(protocols),
        concurrency=args.threads if args.threads is not None else default_concurrency(),
        timeout_ms=args.timeout,
        inspect=args.inspect,
        output_path=args.output,
        deadline_s=args.deadline,
    )


def print_header(job: ScanJob, address: str) -> None:
    print(f"Scanning target: {job.target}")
    print(f"Scanning IP    : {address}")
    print(f"Start-port     : {job.start_port}")
    print(f"End-port       : {job.end_port}")
    print(f"Threads        : {job.concurrency}")
    print(f"Protocol       : {', '.join(p.value.upper() for p in job.ordered_protocols)}")
    print("---------------------------------------------")
    print(HEADER)


def _fail(msg: str, code: int) -> int:
    print(f"error: {msg}", file=sys.stderr)
    return code


def main(argv=None) -> int:
    started = time.perf_counter()
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        job = build_job(args)
    except ConfigurationError as e:
        return _fail(str(e), 2)

    try:
        address = resolve_target(job.target)
    except ResolutionError as e:
        return _fail(str(e), 1)

    if args.verbose:
        print_header(job, address)

    if args.ping_check:
        try:
            alive = ping_check(address)
        except NeteyeError as e:
            return _fail(str(e), 1)
        print(f"Ping to {job.target} {'succeeded' if alive else 'failed'}!")

    try:
        sink = ResultSink(job.output_path)
    except SinkError as e:
        return _fail(str(e), 1)

    hook = INSPECTORS[args.inspector]() if job.inspect else None
    dispatcher = EnumerationDispatcher() if args.enumerate else None

    with sink:
        scanner = Scanner(
            sink,
            hook=hook,
            dispatcher=dispatcher,
            progress_every=args.progress_every,
            show_boundaries=args.verbose,
        )
        try:
            reports = scanner.run(job)
        except KeyboardInterrupt:
            scanner.stop()
            return 130
        except ResolutionError as e:
            return _fail(str(e), 1)
        if not scanner.join_inspections(INSPECTION_JOIN_TIMEOUT_S):
            logger.warning("Some inspections did not finish; their output is missing")

    print(f"Time Elapsed: {time.perf_counter() - started:.3f}s")
    if scanner.interrupted:
        return 130
    if len(reports) < len(job.protocols) or not all(r.complete for r in reports.values()):
        # Stopped by --deadline: partial results, not a completed scan
        return EXIT_INCOMPLETE
    return 0
