"""
Stateless handlers: the root check and the two echo endpoints.

    GET /              → 200, nothing else
    GET /echo/<text>   → <text> as text/plain
    GET /user-agent    → the User-Agent value as text/plain
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, ok


def root(request: HTTPRequest) -> HTTPResponse:
    """Liveness check. Always "HTTP/1.1 200 OK\\r\\n\\r\\n"."""
    return ok()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Echo the rest of the path after "/echo/".

    Everything after the prefix is echoed verbatim, slashes and
    percent-escapes included: /echo/a/b%20c → "a/b%20c".
    """
    return ResponseBuilder().text(request.path_params.get("text", "")).build()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    # Missing header → empty body, still 200
    return ResponseBuilder().text(request.user_agent).build()
