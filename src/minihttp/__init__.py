"""
=============================================================================
minihttp - A MINIMAL CONCURRENT HTTP/1.1 SERVER
=============================================================================

Raw sockets in, hand-assembled HTTP responses out. One request per
connection, a fixed set of routes, optional gzip.

=============================================================================
ROUTES
=============================================================================

    GET  /                 200, empty
    GET  /echo/<text>      <text> as text/plain (gzip if accepted)
    GET  /user-agent       the User-Agent header as text/plain
    GET  /files/<name>     file bytes as application/octet-stream, or 404
    POST /files/<name>     store the body, 201

    anything else          404

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ┌──────────────┐   ┌────────────┐   ┌──────────────────────────┐  │
    │   │ SocketServer │──►│ ThreadPool │──►│ Connection.read_request  │  │
    │   └──────────────┘   └────────────┘   └────────────┬─────────────┘  │
    │                                                    ▼                 │
    │                                      ┌──────────────────────────┐   │
    │                                      │ RequestParser.parse      │   │
    │                                      └────────────┬─────────────┘   │
    │                                                   ▼                  │
    │      LoggingMiddleware → CompressionMiddleware → Router.handle       │
    │                                                   │                  │
    │                                                   ▼                  │
    │                                      ┌──────────────────────────┐   │
    │                                      │ HTTPResponse.to_bytes    │   │
    │                                      └──────────────────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    $ minihttp --directory /tmp/files

    $ curl -v http://localhost:4221/echo/abc
    $ curl -H "Accept-Encoding: gzip" http://localhost:4221/echo/abc | gunzip
    $ curl --data-binary hello http://localhost:4221/files/report.txt

Or from Python:

    from minihttp import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(directory="/tmp/files")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig, StoreConfig

__all__ = ["HTTPServer", "create_app", "ServerConfig", "StoreConfig", "__version__"]
