import pytest

from neteye.errors import ConfigurationError
from neteye.models import PortSpec, Protocol
from neteye.ports import PortRange, parse_port_range


@pytest.mark.parametrize("start,end", [(0, 0), (1, 10), (65530, 65535), (0, 65535)])
def test_range_is_complete_and_ascending(start, end):
    ports = [spec.port for spec in PortRange(start, end)]
    assert len(ports) == end - start + 1
    assert all(a < b for a, b in zip(ports, ports[1:]))
    assert ports[0] == start and ports[-1] == end


def test_range_is_restartable():
    r = PortRange(20, 25)
    assert list(r) == list(r)
    assert len(r) == 6


def test_range_yields_tcp_before_udp():
    r = PortRange(1, 2, [Protocol.UDP, Protocol.TCP])
    assert list(r) == [
        PortSpec(1, Protocol.TCP),
        PortSpec(2, Protocol.TCP),
        PortSpec(1, Protocol.UDP),
        PortSpec(2, Protocol.UDP),
    ]
    assert len(r) == 4


@pytest.mark.parametrize("start,end", [(10, 1), (-1, 5), (1, 65536)])
def test_invalid_range_rejected_up_front(start, end):
    with pytest.raises(ConfigurationError):
        PortRange(start, end)


def test_boundaries():
    assert PortRange(5, 9).boundaries() == [5, 9]
    assert PortRange(7, 7).boundaries() == [7]


def test_parse_port_range():
    assert parse_port_range("1-1024") == (1, 1024)
    assert parse_port_range(" 80 ") == (80, 80)


@pytest.mark.parametrize("spec", ["", "abc", "1-x", "100-1", "1-70000"])
def test_parse_port_range_rejects(spec):
    with pytest.raises(ConfigurationError):
        parse_port_range(spec)
