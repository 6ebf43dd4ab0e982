"""
=============================================================================
MIDDLEWARE
=============================================================================

Request/response processing that wraps the router.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       DEFAULT PIPELINE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPRequest                                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   LoggingMiddleware      ──► access log line (minihttp.access)       │
    │        │                                                             │
    │        ▼                                                             │
    │   CompressionMiddleware  ──► gzip text bodies when accepted          │
    │        │                                                             │
    │        ▼                                                             │
    │   router.handle                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Extra middleware added with HTTPServer.use() lands inside these two.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .compression import CompressionMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
    "CompressionMiddleware",
]
