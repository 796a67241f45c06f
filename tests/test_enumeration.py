import pytest

from neteye.enumeration import ROUTINE_TABLE, EnumerationDispatcher, routine_for


@pytest.mark.parametrize("service,routine", [
    ("http", "http"),
    ("https", "http"),
    ("ssl/http", "http"),
    ("smtp", "smtp"),
    ("ftp", "ftp"),
    ("microsoft-ds", "smb"),
    ("netbios-ssn", "smb"),
    ("snmp", "snmp"),
    ("domain", "dns"),
    ("dns", "dns"),
    ("ssh", "ssh"),
    ("SMTP", "smtp"),
])
def test_routine_for(service, routine):
    assert routine_for(service) == routine


def test_unrouted_services():
    assert routine_for("unknown") is None
    assert routine_for("") is None
    assert routine_for(None) is None


def test_first_match_wins():
    # "http" is listed before "ftp"
    assert [t for t, _ in ROUTINE_TABLE].index("http") < [t for t, _ in ROUTINE_TABLE].index("ftp")
    assert routine_for("http-ftp-gateway") == "http"


def test_dispatch_calls_registered_handler():
    calls = []

    def smb(host, port, service):
        calls.append((host, port, service))
        return "shares: IPC$"

    dispatcher = EnumerationDispatcher({"smb": smb})
    assert dispatcher.dispatch("10.0.0.5", 445, "microsoft-ds") == "shares: IPC$"
    assert calls == [("10.0.0.5", 445, "microsoft-ds")]


def test_dispatch_without_handler_returns_plan():
    dispatcher = EnumerationDispatcher()
    assert dispatcher.dispatch("10.0.0.5", 21, "ftp") == "21: ftp -> ftp enumeration"
    assert dispatcher.dispatch("10.0.0.5", 9999, "unknown") is None


def test_register():
    dispatcher = EnumerationDispatcher()
    dispatcher.register("http", lambda host, port, service: f"{host}:{port} crawled")
    assert dispatcher.dispatch("h", 80, "http") == "h:80 crawled"
