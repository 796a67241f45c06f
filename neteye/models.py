from __future__ import annotations

import bisect
import enum
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional

from .errors import ConfigurationError

MIN_PORT = 0
MAX_PORT = 65535


class Protocol(str, enum.Enum):
    TCP = "tcp"
    UDP = "udp"

    def __str__(self) -> str:
        return self.value


def default_concurrency() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class PortSpec:
    port: int
    protocol: Protocol

    def __post_init__(self):
        if not isinstance(self.port, int) or not MIN_PORT <= self.port <= MAX_PORT:
            raise ConfigurationError(f"Invalid port: {self.port!r}")
        if not isinstance(self.protocol, Protocol):
            raise ConfigurationError(f"Invalid protocol: {self.protocol!r}")


@dataclass(frozen=True)
class ProbeOutcome:
    """
    Result of a single probe. A closed outcome never carries
    service, version or a raw sample.
    """

    target: str
    port: int
    protocol: Protocol
    is_open: bool
    latency_s: float = field(compare=False)
    service: Optional[str] = None
    version: Optional[str] = None
    raw_sample: Optional[bytes] = None

    def __post_init__(self):
        if not self.is_open and (self.service or self.version or self.raw_sample):
            raise ValueError("closed outcome cannot carry service, version or raw sample")

    @classmethod
    def closed(cls, target: str, port: int, protocol: Protocol, latency_s: float = 0.0) -> "ProbeOutcome":
        return cls(target=target, port=port, protocol=protocol, is_open=False, latency_s=latency_s)


@dataclass(frozen=True)
class ScanJob:
    """
    Read-only configuration for one scan. Validation happens here so a bad
    job never reaches the scheduler.
    """

    target: str
    start_port: int
    end_port: int
    protocols: FrozenSet[Protocol] = frozenset({Protocol.TCP})
    concurrency: int = field(default_factory=default_concurrency)
    timeout_ms: int = 3000
    inspect: bool = False
    output_path: Optional[str] = None
    deadline_s: Optional[float] = None

    def __post_init__(self):
        if not self.target or not self.target.strip():
            raise ConfigurationError("Empty target")
        for name in ("start_port", "end_port"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not MIN_PORT <= value <= MAX_PORT:
                raise ConfigurationError(f"{name} must be within {MIN_PORT}-{MAX_PORT}, got {value!r}")
        if self.start_port > self.end_port:
            raise ConfigurationError(f"Invalid port range: {self.start_port}-{self.end_port}")
        if not self.protocols:
            raise ConfigurationError("At least one protocol must be selected")
        object.__setattr__(self, "protocols", frozenset(Protocol(p) for p in self.protocols))
        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            raise ConfigurationError(f"Concurrency must be a positive integer, got {self.concurrency!r}")
        if not isinstance(self.timeout_ms, int) or self.timeout_ms < 1:
            raise ConfigurationError(f"Timeout must be a positive number of milliseconds, got {self.timeout_ms!r}")
        if self.deadline_s is not None and self.deadline_s <= 0:
            raise ConfigurationError(f"Deadline must be positive, got {self.deadline_s!r}")

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def ordered_protocols(self) -> List[Protocol]:
        # TCP first, then UDP
        return [p for p in Protocol if p in self.protocols]


class ScanReport:
    """
    Outcomes for one protocol, kept sorted by port as they arrive.
    """

    def __init__(self, target: str, protocol: Protocol):
        self.target = target
        self.protocol = protocol
        self.finalized = False
        self.complete = False
        self._ports: List[int] = []
        self._outcomes: List[ProbeOutcome] = []

    def add(self, outcome: ProbeOutcome) -> None:
        if self.finalized:
            raise RuntimeError("report already finalized")
        if outcome.protocol is not self.protocol:
            raise ValueError(f"expected {self.protocol} outcome, got {outcome.protocol}")
        idx = bisect.bisect_right(self._ports, outcome.port)
        self._ports.insert(idx, outcome.port)
        self._outcomes.insert(idx, outcome)

    def finalize(self, complete: bool = True) -> "ScanReport":
        self.finalized = True
        self.complete = complete
        return self

    def open_ports(self) -> List[ProbeOutcome]:
        return [o for o in self._outcomes if o.is_open]

    @property
    def outcomes(self) -> List[ProbeOutcome]:
        return list(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[ProbeOutcome]:
        return iter(list(self._outcomes))
