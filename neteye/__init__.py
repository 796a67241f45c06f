"""Concurrent TCP/UDP port scanner with banner-based service detection."""

__version__ = "0.1.0"

from .banner import ServiceKind, classify
from .errors import ConfigurationError, NeteyeError, ResolutionError, SinkError
from .models import PortSpec, ProbeOutcome, Protocol, ScanJob, ScanReport
from .output import ResultSink
from .ports import PortRange, parse_port_range
from .probe import probe
from .scanner import Scanner

__all__ = [
    "ConfigurationError",
    "NeteyeError",
    "PortRange",
    "PortSpec",
    "ProbeOutcome",
    "Protocol",
    "ResolutionError",
    "ResultSink",
    "ScanJob",
    "ScanReport",
    "Scanner",
    "ServiceKind",
    "SinkError",
    "classify",
    "parse_port_range",
    "probe",
]
