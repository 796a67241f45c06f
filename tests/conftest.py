import socket
import socketserver
import threading

import pytest


class _BannerHandler(socketserver.BaseRequestHandler):
    banner = b""

    def handle(self):
        if self.banner:
            self.request.sendall(self.banner)
        try:
            self.request.settimeout(2.0)
            self.request.recv(1024)
        except OSError:
            pass


class _SilentHandler(socketserver.BaseRequestHandler):
    def handle(self):
        # Accept, read the probe, never answer
        self.request.settimeout(2.0)
        try:
            while self.request.recv(1024):
                pass
        except OSError:
            pass


class _Server(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True


def _serve(handler):
    server = _Server(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server, thread


@pytest.fixture
def banner_server():
    """Factory: start a loopback TCP server that sends `banner` on connect."""
    started = []

    def start(banner: bytes) -> int:
        handler = type("Handler", (_BannerHandler,), {"banner": banner})
        server, thread = _serve(handler)
        started.append((server, thread))
        return server.server_address[1]

    yield start
    for server, thread in started:
        server.shutdown()
        server.server_close()
        thread.join()


@pytest.fixture
def silent_server():
    server, thread = _serve(_SilentHandler)
    yield server.server_address[1]
    server.shutdown()
    server.server_close()
    thread.join()


@pytest.fixture
def closed_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def udp_echo_server():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(0.2)
    stop = threading.Event()

    def loop():
        while not stop.is_set():
            try:
                data, addr = sock.recvfrom(1024)
            except OSError:
                continue
            sock.sendto(b"DNS-like reply\n", addr)

    thread = threading.Thread(target=loop, daemon=True)
    thread.start()
    yield sock.getsockname()[1]
    stop.set()
    thread.join()
    sock.close()
