"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userservice import UserServer, ServiceConfig
from userservice.db import Database
from userservice.dispatcher import Dispatcher


def build_request(method: str, target: str, body: str = None) -> bytes:
    """Build a raw request the way a typical client sends it."""
    lines = [f"{method} {target} HTTP/1.1", "Host: localhost:8080"]
    if body is not None:
        lines.append("Content-Type: application/json")
        lines.append(f"Content-Length: {len(body.encode())}")
    head = "\r\n".join(lines) + "\r\n\r\n"
    return (head + (body or "")).encode()


@pytest.fixture
def sample_create_request() -> bytes:
    """Sample create request with a JSON body."""
    return build_request("POST", "/users", '{"name": "Ann", "email": "ann@example.com"}')


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite file for this test."""
    return f"sqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
def database(database_url: str) -> Database:
    """Bootstrapped, empty database."""
    db = Database(database_url)
    db.bootstrap()
    return db


@pytest.fixture
def dispatcher(database: Database) -> Dispatcher:
    """Dispatcher over an empty database."""
    return Dispatcher(database)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, server: UserServer, port: int):
        self.server = server
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self) -> bool:
        """Stop the server and wait for the socket to close."""
        self.server.shutdown()
        stopped = self.server.wait_for_shutdown(timeout=5.0)

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        return stopped

    def send(self, data: bytes, close_write: bool = False) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with socket.create_connection(('127.0.0.1', self.port), timeout=5.0) as s:
            s.sendall(data)
            if close_write:
                s.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)


@pytest.fixture
def test_server(free_port: int, database_url: str) -> Generator[TestServer, None, None]:
    """Create a running server on a free port with an empty database."""
    server = UserServer(ServiceConfig(
        host="127.0.0.1",
        port=free_port,
        database_url=database_url,
        timeout=2.0,
        log_level="WARNING",
    ))

    test_srv = TestServer(server, free_port)
    test_srv.start()

    yield test_srv

    test_srv.stop()
