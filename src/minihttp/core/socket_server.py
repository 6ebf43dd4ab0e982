"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, and an accept loop that hands
every client socket to a callback as a Connection.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     SERVER SOCKET LIFECYCLE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   socket(AF_INET, SOCK_STREAM)                                       │
    │        │                                                             │
    │   setsockopt(SO_REUSEADDR, TCP_NODELAY)                              │
    │        │                                                             │
    │   bind(("127.0.0.1", 4221))      ← OSError here = startup failure   │
    │        │                                                             │
    │   listen(backlog)                ← ready event is set here           │
    │        │                                                             │
    │   ┌────▼──────────────────────────────────────┐                      │
    │   │ while running:                            │                      │
    │   │     accept()   (1s timeout, to poll flag) │                      │
    │   │     callback(Connection(...))             │                      │
    │   └────┬──────────────────────────────────────┘                      │
    │        │                                                             │
    │   close()                                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A failing accept() is logged and the loop carries on; only shutdown()
ends it. One bad client can't take the listener down.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM trigger shutdown(), but Python only lets the
main thread install signal handlers. When the server runs on any other
thread (the test suite does this) signals are left alone and the owner
calls shutdown() directly.

=============================================================================
"""

import socket
import signal
import threading
import time
import logging
from typing import Callable, Optional, Tuple

from .connection import Connection
from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Accept loop over a single listening TCP socket.

    Usage:
        def on_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(on_connection)   # blocks until shutdown()

    From another thread:
        server.wait_until_ready(timeout=5)
        host, port = server.address
        ...
        server.shutdown()
    """

    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before bind this is the configured address; after bind it is
        what the kernel actually assigned, so port=0 resolves to the
        real ephemeral port.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind straight away after a restart, despite TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are one small write; don't let Nagle hold them back
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up at least this often to check _running
        sock.settimeout(self.ACCEPT_POLL_INTERVAL)

        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """Install SIGINT/SIGTERM handlers, main thread only."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept until shutdown(). Blocks.

        Args:
            connection_handler: Called on the accept thread with each new
                                Connection. Must return quickly.

        Raises:
            OSError: If the socket cannot be bound or put into listen mode.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(
                f"Failed to bind to {self.config.host}:{self.config.port}: {e}"
            )
            self._socket.close()
            self._socket = None
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Accept error: {e}")
                # e.g. EMFILE; don't spin while the condition lasts
                time.sleep(0.1)
                continue

            logger.debug(
                f"Accepted connection from {client_address[0]}:{client_address[1]}"
            )

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Safe from any thread, and idempotent."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is listening.

        Returns:
            True once listening, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown() has been called.

        Returns:
            True if shut down, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
