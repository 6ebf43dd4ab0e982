"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can emit, with their reason phrases.

=============================================================================
WHICH CODES, AND WHEN
=============================================================================

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │  Emitted for                                              │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ GET /, GET /echo/..., GET /user-agent, GET /files/<name>  │
    │  201   │ POST /files/<name> stored the body                        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ /files/<name> with a name that escapes the storage root   │
    │  404   │ Unknown path, unknown method, missing file                │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ File write failed, or a handler raised                    │
    │  503   │ Worker pool queue is full                                 │
    └────────┴───────────────────────────────────────────────────────────┘

A malformed request gets NO status code at all - the connection is
simply closed without writing anything.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so codes compare equal to plain integers:

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.CREATED.phrase
        'Created'
    """

    # 2xx SUCCESS
    OK = 200                        # Request handled, body (possibly empty) follows
    CREATED = 201                   # File stored

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400               # Unsafe file name
    NOT_FOUND = 404                 # No route, or no such file

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500     # Write failure or handler crash
    SERVICE_UNAVAILABLE = 503       # Worker pool saturated

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
