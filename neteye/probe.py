"""
Single-port probes.

TCP: connect, send a small HTTP HEAD request and read one buffer, all within
one timeout budget. A port that accepts the connection is open even if the
banner read fails.

UDP: send one datagram from an ephemeral socket and wait for any reply.
No reply is reported as closed. UDP has no handshake, so a silent service
is a known false negative of this probe.
"""
from __future__ import annotations

import socket
import time
from typing import Optional, Tuple

from .banner import UNKNOWN, classify
from .errors import ResolutionError
from .models import ProbeOutcome, Protocol

RECV_SIZE = 1024
TCP_PAYLOAD = b"HEAD / HTTP/1.0\r\n\r\n"
UDP_DEFAULT_PAYLOAD = b"\n"

UDP_PAYLOADS = {
    # DNS: CHAOS TXT query for version.bind
    53: (
        b"\x4e\x45\x01\x00\x00\x01\x00\x00\x00\x00\x00\x00"
        b"\x07version\x04bind\x00\x00\x10\x00\x03"
    ),
    # NTP: v3 client request
    123: b"\x1b" + b"\x00" * 47,
}


def _sockaddr(target: str, port: int, sock_type: int) -> Tuple[int, tuple]:
    try:
        infos = socket.getaddrinfo(target, port, type=sock_type)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"Could not resolve target '{target}': {e}") from e
    if not infos:
        raise ResolutionError(f"Could not resolve target '{target}': no addresses")
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


def _elapsed(start: float) -> float:
    return round(time.perf_counter() - start, 4)


def probe_tcp(target: str, port: int, timeout_s: float) -> ProbeOutcome:
    family, sockaddr = _sockaddr(target, port, socket.SOCK_STREAM)
    start = time.perf_counter()
    sock: Optional[socket.socket] = None
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.settimeout(timeout_s)
        sock.connect(sockaddr)
    except (socket.timeout, ConnectionRefusedError, OSError):
        if sock:
            sock.close()
        return ProbeOutcome.closed(target, port, Protocol.TCP, _elapsed(start))

    try:
        remaining = timeout_s - (time.perf_counter() - start)
        if remaining <= 0:
            raise socket.timeout("deadline reached after connect")
        sock.settimeout(remaining)
        sock.sendall(TCP_PAYLOAD)
        data = sock.recv(RECV_SIZE)
    except (socket.timeout, OSError):
        data = b""
    finally:
        sock.close()

    service, version = classify(data) if data else (UNKNOWN, UNKNOWN)
    return ProbeOutcome(
        target=target,
        port=port,
        protocol=Protocol.TCP,
        is_open=True,
        latency_s=_elapsed(start),
        service=service,
        version=version,
        raw_sample=data or None,
    )


def probe_udp(target: str, port: int, timeout_s: float) -> ProbeOutcome:
    family, sockaddr = _sockaddr(target, port, socket.SOCK_DGRAM)
    payload = UDP_PAYLOADS.get(port, UDP_DEFAULT_PAYLOAD)
    start = time.perf_counter()
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.settimeout(timeout_s)
        sock.bind(("::", 0) if family == socket.AF_INET6 else ("0.0.0.0", 0))
        sock.sendto(payload, sockaddr)
        data, _ = sock.recvfrom(RECV_SIZE)
    except (socket.timeout, ConnectionRefusedError, OSError):
        return ProbeOutcome.closed(target, port, Protocol.UDP, _elapsed(start))
    finally:
        sock.close()

    service, version = classify(data)
    return ProbeOutcome(
        target=target,
        port=port,
        protocol=Protocol.UDP,
        is_open=True,
        latency_s=_elapsed(start),
        service=service,
        version=version,
        raw_sample=data or None,
    )


def probe(target: str, port: int, protocol: Protocol, timeout_s: float) -> ProbeOutcome:
    if protocol is Protocol.TCP:
        return probe_tcp(target, port, timeout_s)
    if protocol is Protocol.UDP:
        return probe_udp(target, port, timeout_s)
    raise ValueError(f"Unsupported protocol: {protocol!r}")
