"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them to wire bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  HTTP/1.1 200 OK\\r\\n                   ← status line                │
    │  Content-Type: text/plain\\r\\n          ┐                            │
    │  Content-Length: 3\\r\\n                 ├ headers, in insertion order│
    │  Content-Encoding: gzip\\r\\n            ┘                            │
    │  \\r\\n                                  ← blank line                 │
    │  abc                                   ← body, Content-Length bytes │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
NOTHING IMPLICIT
=============================================================================

to_bytes() writes exactly the headers the handler (and middleware) put
on the response - no Date, no Server, no automatic Content-Length. That
is how "GET /" can answer with a bare

    HTTP/1.1 200 OK\\r\\n\\r\\n

The flip side is that whoever sets a body must also set Content-Length.
ResponseBuilder.text() and .octet_stream() do both at once, and the
compression middleware rewrites Content-Length when it replaces the body.

=============================================================================
BUILDER PATTERN
=============================================================================

    ResponseBuilder()
        .status(HTTPStatus.OK)
        .text("abc")
        .build()

Each method returns the builder, build() returns the HTTPResponse.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Socket sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes

    Headers live in a plain dict: Python dicts keep insertion order, and
    that order is exactly the order they go out on the wire.

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 201 Created"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header. Returns self for chaining.

        Re-setting an existing header keeps its original position.
        """
        self.headers[name] = value
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for socket.sendall().

        Returns:
            Status line + headers + blank line + body.
        """
        lines = [self.status_line]

        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Empty element → the terminating blank line after the join
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8", errors="surrogateescape") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Usage:
        # Echo a string
        ResponseBuilder().text("abc").build()

        # File download
        ResponseBuilder().octet_stream(data).build()

        # Bodyless status
        ResponseBuilder().status(HTTPStatus.CREATED).empty().build()
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes], content_type: str) -> "ResponseBuilder":
        """
        Set the body along with its Content-Type and Content-Length.

        Args:
            body: Response body (str is encoded as UTF-8, with any
                  surrogate-escaped request bytes restored verbatim)
            content_type: MIME type for the Content-Type header

        Returns:
            Self for method chaining
        """
        if isinstance(body, str):
            body = body.encode("utf-8", errors="surrogateescape")
        self._body = body
        self._headers["Content-Type"] = content_type
        self._headers["Content-Length"] = str(len(body))
        return self

    def text(self, text: Union[str, bytes]) -> "ResponseBuilder":
        """Set a text/plain body."""
        return self.body(text, "text/plain")

    def octet_stream(self, data: bytes) -> "ResponseBuilder":
        """Set an application/octet-stream body (file downloads)."""
        return self.body(data, "application/octet-stream")

    def empty(self) -> "ResponseBuilder":
        """
        Declare an explicitly empty body with "Content-Length: 0".

        Used for 201/400/500/503, so clients know not to wait for a body.
        """
        self._body = b""
        self._headers["Content-Length"] = "0"
        return self

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize the response in one step."""
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the fixed set of outcomes the router produces.
#
# =============================================================================

def ok() -> HTTPResponse:
    """200 OK with no headers and no body (the root route)."""
    return HTTPResponse(status=HTTPStatus.OK)


def created() -> HTTPResponse:
    """201 Created with "Content-Length: 0" (file stored)."""
    return ResponseBuilder().status(HTTPStatus.CREATED).empty().build()


def not_found() -> HTTPResponse:
    """
    404 Not Found with no headers and no body.

    Sent for unknown paths, unsupported methods and missing files alike.
    """
    return HTTPResponse(status=HTTPStatus.NOT_FOUND)


def bad_request() -> HTTPResponse:
    """400 Bad Request with "Content-Length: 0"."""
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).empty().build()


def internal_error() -> HTTPResponse:
    """
    500 Internal Server Error with "Content-Length: 0".

    The failure detail goes to the log, never to the client.
    """
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).empty().build()


def service_unavailable() -> HTTPResponse:
    """503 Service Unavailable with "Content-Length: 0" (pool saturated)."""
    return ResponseBuilder().status(HTTPStatus.SERVICE_UNAVAILABLE).empty().build()
