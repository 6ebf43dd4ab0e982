"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about HTTP/1.1 syntax, and nothing about sockets:

    request.py       raw bytes       → HTTPRequest
    router.py        HTTPRequest     → handler → HTTPResponse
    response.py      HTTPResponse    → raw bytes
    status_codes.py  the six status codes this server emits

    ┌──────────────┐     ┌──────────────┐     ┌──────────────┐
    │ RequestParser│────►│    Router    │────►│ HTTPResponse │
    │   .parse()   │     │   .handle()  │     │  .to_bytes() │
    └──────────────┘     └──────────────┘     └──────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    Method,
    MalformedRequest,
    RequestParser,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                   # 200, bare
    created,              # 201
    bad_request,          # 400
    not_found,            # 404, bare
    internal_error,       # 500
    service_unavailable,  # 503
)
from .router import Router, Route, RouteMatch, Handler
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "Method",
    "MalformedRequest",
    "RequestParser",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "internal_error",
    "service_unavailable",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "Handler",

    # Status codes
    "HTTPStatus",
]
