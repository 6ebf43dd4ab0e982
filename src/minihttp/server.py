"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: socket server, thread pool, parser,
middleware and router.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ONE CONNECTION, END TO END                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  accept thread                                                       │
    │  ─────────────                                                       │
    │   SocketServer.accept() ──► _handle_connection(conn)                 │
    │                               │                                      │
    │                               ├─ pool.submit() ok ─────────┐         │
    │                               └─ queue full → 503, bg close│         │
    │                                                            │         │
    │  worker thread                                             ▼         │
    │  ─────────────                                                       │
    │   _process_connection(conn)                                          │
    │     1. conn.read_request()    timeout / too large → close, log       │
    │     2. parser.parse()         MalformedRequest    → close, log       │
    │     3. handler(request)       LoggingMiddleware                      │
    │                                 └ CompressionMiddleware              │
    │                                     └ router.handle                  │
    │                               exception           → 500              │
    │     4. response.to_bytes()                                           │
    │     5. conn.send_response()                                          │
    │     6. conn.close()           always, exactly once                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every connection carries exactly one request. A dropped connection
(steps 1-2) gets no bytes at all, not even an error status.

=============================================================================
"""

import logging
import threading
from typing import Optional, Callable, Tuple

from .app import create_router
from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPRequest, HTTPResponse, MalformedRequest, RequestParser, Router,
    internal_error, service_unavailable,
)
from .middleware import (
    Middleware, MiddlewarePipeline, LoggingMiddleware, CompressionMiddleware,
)
from .storage import FileStore


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    The minihttp server.

    =========================================================================
    USAGE
    =========================================================================

        # Blocking, on the main thread (Ctrl+C stops it)
        server = HTTPServer(ServerConfig(directory="/tmp/files"))
        server.run()

        # In the background, e.g. from a test
        server = HTTPServer(ServerConfig(port=0))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(timeout=5)
        host, port = server.address
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    COMPONENTS
    =========================================================================

    - ServerConfig:        frozen, validated here
    - FileStore:           /files/* backing, built from config.store
    - Router:              the fixed route table (app.create_router)
    - MiddlewarePipeline:  access log → gzip → (anything from use())
    - RequestParser:       raw bytes → HTTPRequest
    - ThreadPool:          bounded workers
    - SocketServer:        the listener

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION
        # ─────────────────────────────────────────────────────────────────
        self.store = FileStore(self.config.store)
        self._router = create_router(self.store)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        self._middleware.add(CompressionMiddleware())

        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        # ─────────────────────────────────────────────────────────────────
        # NETWORKING
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        # middleware.wrap(router.handle), built in run()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """
        Add middleware inside the built-in logging and compression layers.

        Must be called before run().
        """
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening, even for port 0."""
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Serve until shutdown() or SIGINT/SIGTERM. Blocks.

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

        root = self.store.root or "."
        logger.info(f"Serving /files/* from {root}")
        for route in self._router.routes():
            logger.debug(f"  {route.method.value:<5} {route.path}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask run() to return. Safe to call from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # No-op if the root logger is already configured (e.g. under pytest)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a freshly accepted connection to the pool (accept thread)."""
        if self._thread_pool.submit(self._process_connection, conn):
            return

        logger.warning(f"[{conn.id}] Worker queue full, rejecting {conn.client_ip}")
        conn.send_response(service_unavailable().to_bytes())

        # close() drains for up to 0.5s; keep that off the accept thread
        threading.Thread(
            target=conn.close, name=f"reject-{conn.id}", daemon=True
        ).start()

    def _process_connection(self, conn: Connection):
        """Read, route and answer exactly one request (worker thread)."""
        with conn:
            try:
                raw_request = conn.read_request()
            except (OSError, ValueError) as e:
                logger.warning(f"[{conn.id}] Dropping connection from {conn.client_ip}: {e}")
                return

            if raw_request is None:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except MalformedRequest as e:
                logger.warning(f"[{conn.id}] Malformed request from {conn.client_ip}: {e}")
                return

            try:
                response = self._handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            conn.send_response(response.to_bytes())


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server instance.

    Args:
        config: Server configuration.

    Returns:
        An HTTPServer, not yet running.
    """
    return HTTPServer(config)
