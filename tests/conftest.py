"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig, StoreConfig
from minihttp.middleware import Middleware
from minihttp.storage import FileStore


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request carrying all three recognised headers."""
    return (
        b"GET /echo/abc HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request storing a small file."""
    body = b"hello"
    head = (
        b"POST /files/report.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
    )
    return head + f"Content-Length: {len(body)}\r\n\r\n".encode() + body


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """Empty directory used as the /files/* root."""
    root = tmp_path / "files"
    root.mkdir()
    return root


@pytest.fixture
def store(files_dir: Path) -> FileStore:
    """FileStore rooted at files_dir."""
    return FileStore(StoreConfig(root=str(files_dir)))


@pytest.fixture
def config(files_dir: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        directory=str(files_dir),
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@dataclass
class RawResponse:
    """A response split into its wire parts."""
    status: int
    reason: str
    headers: Dict[str, str]
    header_names: List[str]
    body: bytes
    raw: bytes


class RawClient:
    """
    Speaks raw bytes to the server, one connection per call.

    The server closes after each response, so reading until EOF yields
    the whole response.
    """

    def __init__(self, port: int, host: str = "127.0.0.1"):
        self.host = host
        self.port = port

    def send(self, *chunks: bytes, delay: float = 0.0, timeout: float = 5.0,
             half_close: bool = False) -> bytes:
        """
        Send chunks (optionally spaced out) and return everything received.

        half_close shuts down our write side after the last chunk, so the
        server sees EOF instead of waiting for more request bytes.
        """
        with socket.create_connection((self.host, self.port), timeout=timeout) as s:
            s.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            for i, chunk in enumerate(chunks):
                if i and delay:
                    time.sleep(delay)
                s.sendall(chunk)

            if half_close:
                s.shutdown(socket.SHUT_WR)

            received = b""
            while True:
                data = s.recv(4096)
                if not data:
                    return received
                received += data

    def request(self, *chunks: bytes, **kwargs) -> RawResponse:
        return parse_response(self.send(*chunks, **kwargs))


def parse_response(raw: bytes) -> RawResponse:
    """Split raw response bytes into status, headers and body."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")

    _version, status, reason = lines[0].split(" ", 2)

    headers: Dict[str, str] = {}
    names: List[str] = []
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
        names.append(name)

    return RawResponse(
        status=int(status),
        reason=reason,
        headers=headers,
        header_names=names,
        body=body,
        raw=raw,
    )


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server with its /files/* root at files_dir."""
    test_srv = TestServer(HTTPServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def client(test_server: TestServer) -> RawClient:
    """Raw-socket client pointed at test_server."""
    return RawClient(test_server.port)


@pytest.fixture
def server_factory() -> Generator:
    """
    Start extra servers with custom configs.

    Returns a function: (config, *middleware) → (TestServer, RawClient).
    Every server it starts is stopped at teardown.
    """
    started: List[TestServer] = []

    def start(config: ServerConfig, *middleware: Middleware):
        server = HTTPServer(config)
        for mw in middleware:
            server.use(mw)

        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv, RawClient(test_srv.port)

    yield start

    for test_srv in started:
        test_srv.stop()
