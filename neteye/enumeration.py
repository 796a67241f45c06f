"""
Routing of classified services to deep enumeration routines.

The routines themselves (web content discovery, SMB/NetBIOS enumeration,
SNMP walks, DNS zone queries and so on) live outside this package; this
module only owns the table that decides which routine a service goes to.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

EnumerationHandler = Callable[[str, int, str], Optional[str]]

# Ordered: the first substring found in the service name wins.
ROUTINE_TABLE: Tuple[Tuple[str, str], ...] = (
    ("http", "http"),
    ("ssl", "http"),
    ("smtp", "smtp"),
    ("ftp", "ftp"),
    ("microsoft-ds", "smb"),
    ("netbios", "smb"),
    ("smb", "smb"),
    ("snmp", "snmp"),
    ("domain", "dns"),
    ("dns", "dns"),
    ("ssh", "ssh"),
)


def routine_for(service: Optional[str]) -> Optional[str]:
    if not service:
        return None
    lowered = service.lower()
    for token, routine in ROUTINE_TABLE:
        if token in lowered:
            return routine
    return None


class EnumerationDispatcher:
    def __init__(self, handlers: Optional[Dict[str, EnumerationHandler]] = None):
        self._handlers: Dict[str, EnumerationHandler] = dict(handlers or {})

    def register(self, routine: str, handler: EnumerationHandler) -> None:
        self._handlers[routine] = handler

    def routine_for(self, service: Optional[str]) -> Optional[str]:
        return routine_for(service)

    def dispatch(self, host: str, port: int, service: Optional[str]) -> Optional[str]:
        """
        Runs the registered handler for the service and returns its text.
        Without a registered handler the planned routine is returned as a
        one-line note so the caller can still report it.
        """
        routine = self.routine_for(service)
        if routine is None:
            return None
        handler = self._handlers.get(routine)
        if handler is None:
            return f"{port}: {service} -> {routine} enumeration"
        logger.debug("Dispatching %s:%d (%s) to %s", host, port, service, routine)
        return handler(host, port, service)
