"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket: read ONE request, write ONE response,
close. There is no keep-alive and no pipelining.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

TCP doesn't preserve message boundaries. A request sent in one write()
may arrive as several recv() chunks:

    recv() → "PUT /users/4 HTT"
    recv() → "P/1.1\\r\\nContent-Length: 35\\r\\n\\r\\n"
    recv() → '{"name": "Ann", "email": "a@x.com"}'

So we buffer until we see the blank line that ends the headers, then keep
reading until Content-Length bytes of body have arrived. Without a
Content-Length header, whatever arrived with the headers is the body.
Bytes already in the buffer are never dropped.

=============================================================================
WHEN THE REQUEST ISN'T "PROPER" HTTP
=============================================================================

Clients of this service have always been allowed to send bare request
lines such as "GET /users" with no headers at all. When the client stops
sending (closes its write side, or goes quiet past the timeout) we hand
over whatever is buffered instead of waiting for a blank line forever:

    ┌──────────────────────────────┬─────────────────────────────────────┐
    │ Situation                    │ read_request() returns              │
    ├──────────────────────────────┼─────────────────────────────────────┤
    │ headers + full body          │ the request bytes                   │
    │ headers, no Content-Length   │ everything buffered so far          │
    │ peer closed, data buffered   │ the buffered bytes                  │
    │ timeout, data buffered       │ the buffered bytes                  │
    │ peer closed, nothing read    │ None                                │
    │ timeout, nothing read        │ raises TimeoutError                 │
    │ more than max_request_size   │ raises ValueError                   │
    └──────────────────────────────┴─────────────────────────────────────┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging."""

    NEW = "new"                # Just accepted
    READING = "reading"        # Reading the request
    PROCESSING = "processing"  # Request handed to the dispatcher
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    def read_request(self) -> Optional[bytes]:
        """
        Read one request from the socket.

        Returns:
            The request bytes, or None if the client closed the connection
            without sending anything.

        Raises:
            TimeoutError: If nothing arrived before the timeout.
            ValueError: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            # ─────────────────────────────────────────────────────────────
            # PHASE 1: read until the end of the headers
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return self._take_buffer()
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            # ─────────────────────────────────────────────────────────────
            # PHASE 2: read the declared body, if one was declared
            # ─────────────────────────────────────────────────────────────
            if content_length is not None:
                while len(self._buffer) - body_start < content_length:
                    chunk = self._recv()
                    if not chunk:
                        break  # Peer closed mid-body, serve what we have
                    self._append(chunk)

            return self._take_buffer()

        except socket.timeout:
            if self._buffer:
                logger.debug(f"[{self.id}] Read timeout, using {len(self._buffer)} buffered bytes")
                return self._take_buffer()
            raise TimeoutError("Request read timeout")

    def _append(self, chunk: bytes):
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _take_buffer(self) -> Optional[bytes]:
        data, self._buffer = self._buffer, b""
        return data or None

    def _recv(self) -> bytes:
        """
        Receive data from the socket.

        Returns:
            Received bytes, or empty bytes if the connection was reset.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> Optional[int]:
        """
        Find Content-Length in the raw header block.

        Returns:
            The declared body length, or None if absent or unparseable.
        """
        try:
            header_str = headers.decode("utf-8", errors="replace").lower()
            for line in header_str.split("\r\n"):
                if line.startswith("content-length:"):
                    return max(int(line.split(":", 1)[1].strip()), 0)
        except (ValueError, IndexError):
            pass
        return None

    def send_response(self, data: bytes) -> bool:
        """
        Send the whole response.

        Returns:
            True if the bytes were sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self):
        """
        Close the connection.

        shutdown(SHUT_WR) sends FIN so the client sees end-of-response,
        then we drain anything left and release the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # socket.timeout is an OSError too

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
