from __future__ import annotations

import enum
import re
from typing import Optional, Tuple

UNKNOWN = "unknown"

_PRINTABLE = re.compile(r"[^\x09\x0a\x0d\x20-\x7e]")


class ServiceKind(str, enum.Enum):
    SSH = "ssh"
    HTTP = "http"
    HTTPS = "https"
    FTP = "ftp"
    SMTP = "smtp"
    IMAP = "imap"
    POP3 = "pop3"
    TELNET = "telnet"
    DNS = "dns"
    UNKNOWN = UNKNOWN

    def __str__(self) -> str:
        return self.value


# First match wins. HTTP is checked before HTTPS/SSL and everything after it,
# so a web banner that happens to mention other protocols stays "http".
SIGNATURES: Tuple[Tuple[str, ServiceKind], ...] = (
    ("ssh", ServiceKind.SSH),
    ("http/1.0", ServiceKind.HTTP),
    ("http/1.1", ServiceKind.HTTP),
    ("https", ServiceKind.HTTPS),
    ("ssl", ServiceKind.HTTPS),
    ("ftp", ServiceKind.FTP),
    ("smtp", ServiceKind.SMTP),
    ("imap", ServiceKind.IMAP),
    ("pop3", ServiceKind.POP3),
    ("telnet", ServiceKind.TELNET),
    ("dns", ServiceKind.DNS),
)


def _clean_text(s: str, max_len: int = 300) -> str:
    s = _PRINTABLE.sub("", s)
    s = s.strip()
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").replace("\x00", "")


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line
    return text


def match_kind(text: str) -> ServiceKind:
    lowered = text.lower()
    for token, kind in SIGNATURES:
        if token in lowered:
            return kind
    return ServiceKind.UNKNOWN


def extract_version(text: str) -> str:
    """
    Heuristic: a "Server:" line wins, otherwise the first line.
    """
    for line in text.splitlines():
        if "server:" in line.lower():
            return _clean_text(line, 200)
    return _clean_text(_first_line(text), 200)


def classify(raw: Optional[bytes]) -> Tuple[str, str]:
    """
    Returns (service, version) for a response buffer. Never raises on
    malformed input; anything unrecognised is "unknown" with the first
    line kept as the version so it can still be read by a human.
    """
    if not raw:
        return UNKNOWN, UNKNOWN

    text = _decode(raw)
    kind = match_kind(text)
    if kind is ServiceKind.UNKNOWN:
        version = _clean_text(_first_line(text), 200)
        return UNKNOWN, version or UNKNOWN
    return kind.value, extract_version(text) or UNKNOWN
