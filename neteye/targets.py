from __future__ import annotations

import ipaddress
import socket

from .errors import ResolutionError


def resolve_target(target: str) -> str:
    """
    Supports:
      - IPv4 / IPv6 literal: "172.20.0.10", "::1"
      - Hostname: "webapp" (first address returned by the resolver)
    """
    target = target.strip()
    if not target:
        raise ResolutionError("Empty target")

    try:
        return str(ipaddress.ip_address(target))
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(target, None, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"Could not resolve target '{target}': {e}") from e

    if not infos:
        raise ResolutionError(f"Could not resolve target '{target}': no addresses")

    # Prefer IPv4 when the resolver offers both
    infos.sort(key=lambda info: info[0] != socket.AF_INET)
    return infos[0][4][0]
