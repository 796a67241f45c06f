from __future__ import annotations

from typing import Iterable, Iterator, List, Tuple

from .errors import ConfigurationError
from .models import MAX_PORT, MIN_PORT, PortSpec, Protocol


def parse_port_range(spec: str) -> Tuple[int, int]:
    """
    Parses a port range string into inclusive bounds.
    Supports:
    - Single port: "80"
    - Range: "1-1024"
    """
    spec = spec.strip()
    if not spec:
        raise ConfigurationError("Empty port spec")

    try:
        if "-" in spec:
            start_s, end_s = spec.split("-", 1)
            start, end = int(start_s), int(end_s)
        else:
            start = end = int(spec)
    except ValueError as e:
        raise ConfigurationError(f"Invalid port spec: {spec}") from e

    validate_range(start, end)
    return start, end


def validate_range(start: int, end: int) -> None:
    if start < MIN_PORT or end > MAX_PORT or start > end:
        raise ConfigurationError(f"Invalid port range: {start}-{end}")


class PortRange:
    """
    Inclusive, ascending port range for a set of protocols.

    Iterating yields PortSpec values protocol by protocol (TCP first); each
    call to iter() starts over, nothing is materialised up front.
    """

    def __init__(self, start: int, end: int, protocols: Iterable[Protocol] = (Protocol.TCP,)):
        validate_range(start, end)
        self.start = start
        self.end = end
        requested = set(protocols)
        self.protocols = [p for p in Protocol if p in requested]
        if not self.protocols:
            raise ConfigurationError("At least one protocol must be selected")

    def ports(self) -> range:
        return range(self.start, self.end + 1)

    def for_protocol(self, protocol: Protocol) -> Iterator[PortSpec]:
        for port in self.ports():
            yield PortSpec(port, protocol)

    def __iter__(self) -> Iterator[PortSpec]:
        for protocol in self.protocols:
            yield from self.for_protocol(protocol)

    def __len__(self) -> int:
        return len(self.ports()) * len(self.protocols)

    def boundaries(self) -> List[int]:
        return sorted({self.start, self.end})
