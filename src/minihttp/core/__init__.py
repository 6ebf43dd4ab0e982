"""
=============================================================================
CORE NETWORKING
=============================================================================

The socket-level machinery, independent of HTTP semantics:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ── accept() ──► Connection ──► ThreadPool.submit()    │
    │   (listener)                   (one client)    (bounded workers)     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

SocketServer
    Binds, listens, runs the accept loop, handles SIGINT/SIGTERM.

Connection
    Frames one request (headers, then Content-Length body bytes),
    sends one response, closes.

ThreadPool
    Fixed minimum of workers growing to a hard maximum, with a bounded
    wait queue. A full queue is reported back to the caller, who sends
    503.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
