"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket: frames exactly one HTTP request off
the wire, writes one response back, and closes.

=============================================================================
WHY FRAMING IS NEEDED
=============================================================================

TCP is a byte stream, not a message stream. A single request can arrive
in any number of recv() chunks:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  What the client sent:                                              │
    │     POST /files/a HTTP/1.1\\r\\nContent-Length: 11\\r\\n\\r\\nhello world │
    │                                                                      │
    │  What recv() may return:                                             │
    │     chunk 1:  POST /files/a HTTP/1.1\\r\\nContent-Le                  │
    │     chunk 2:  ngth: 11\\r\\n\\r\\nhel                                  │
    │     chunk 3:  lo world                                               │
    └─────────────────────────────────────────────────────────────────────┘

So read_request() keeps reading until the blank line that ends the
headers, then keeps reading until exactly Content-Length body bytes
have arrived. A single recv() into a fixed buffer would silently cut
off bodies larger than the buffer.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    NEW ──────► READING ──────► WRITING ──────► CLOSED
     │             │                              ▲
     │             └── malformed / timeout ───────┤
     └────────────────── client gone ─────────────┘

There is no keep-alive. After the response is written the socket is
shut down and closed, and any bytes beyond the first request are
discarded.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and double-close checks."""
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A single client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current connection state.
        created_at: When the connection was accepted.
        buffer_size: Bytes requested per recv().
        timeout: Socket timeout in seconds, None to block forever.
        max_request_size: Requests larger than this are refused.

    Usage:
        with Connection(sock, addr, timeout=30.0) as conn:
            data = conn.read_request()
            if data is not None:
                conn.send_response(response_bytes)
        # closed here
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # From ServerConfig
    buffer_size: int = 4096
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # settimeout(None) puts the socket in plain blocking mode
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_request() Flow                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   ┌──────────────────────┐                                      │
        │   │ while no \\r\\n\\r\\n:   │   ← headers may span many chunks    │
        │   │   recv() → buffer    │                                      │
        │   └──────────┬───────────┘                                      │
        │   ┌──────────▼───────────┐                                      │
        │   │ Content-Length → N   │   ← 0 when absent                    │
        │   └──────────┬───────────┘                                      │
        │   ┌──────────▼───────────┐                                      │
        │   │ while body < N:      │                                      │
        │   │   recv() → buffer    │                                      │
        │   └──────────┬───────────┘                                      │
        │   ┌──────────▼───────────┐                                      │
        │   │ return head + N body │   ← extra bytes are dropped          │
        │   └──────────────────────┘                                      │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        If the client half-closes before the blank line, whatever arrived
        is returned as-is and the parser decides whether it is usable.
        Closing after the blank line but short of Content-Length raises
        ValueError, so a truncated upload is never stored.

        Returns:
            The request bytes, or None if the client sent nothing at all.

        Raises:
            TimeoutError: If the client stalls longer than `timeout`.
            ValueError: If the request exceeds max_request_size, has an
                        unusable Content-Length, or the client closes
                        before the whole body arrived.
        """
        self.state = ConnectionState.READING

        try:
            # ─────────────────────────────────────────────────────────────
            # STEP 1: Read until the header terminator
            # ─────────────────────────────────────────────────────────────
            while HEADER_TERMINATOR not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return self._buffer or None
                self._append(chunk)

            header_end = self._buffer.find(HEADER_TERMINATOR)
            body_start = header_end + len(HEADER_TERMINATOR)

            # ─────────────────────────────────────────────────────────────
            # STEP 2: Read exactly Content-Length body bytes
            # ─────────────────────────────────────────────────────────────
            content_length = self._parse_content_length(self._buffer[:header_end])
            if body_start + content_length > self.max_request_size:
                raise ValueError(
                    f"Request too large: Content-Length {content_length}"
                )

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    raise ValueError(
                        f"Incomplete body: {len(self._buffer) - body_start}"
                        f" of {content_length} bytes"
                    )
                self._append(chunk)

            return self._buffer[:body_start + content_length]

        except socket.timeout:
            raise TimeoutError(
                f"Request read timed out after {self.timeout}s"
            ) from None

    def _recv(self) -> bytes:
        """recv() one chunk; an abrupt disconnect reads as EOF."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Find Content-Length in the raw header block.

        Matched case-insensitively, since this is only used for framing.

        Raises:
            ValueError: If the value is not a plain run of ASCII digits.
        """
        header_str = headers.decode("utf-8", errors="replace")
        for line in header_str.split("\r\n")[1:]:
            name, sep, value = line.partition(":")
            if sep and name.strip().lower() == "content-length":
                value = value.strip()
                # int() also accepts "+5" and "1_0"
                if not (value.isascii() and value.isdigit()):
                    raise ValueError(f"Invalid Content-Length: {value!r}")
                return int(value)
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if everything was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.error(f"[{self.id}] Send to {self.client_ip} failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Shut down and close the socket. Safe to call more than once.

            shutdown(SHUT_WR)   → client sees EOF after our response
            drain briefly       → don't reset on unread request bytes
            close()             → release the descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.age * 1000:.1f}ms")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
