"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a client socket into a structured
HTTPRequest. The parser is deliberately narrow: it understands a request
line, three specific headers, and (for POST) a body.

=============================================================================
WHAT THE PARSER LOOKS AT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RAW REQUEST BYTES                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  POST /files/report.txt HTTP/1.1\\r\\n     ← request line (3 tokens)  │
    │  Host: localhost:4221\\r\\n                ← "Host: " prefix         │
    │  User-Agent: curl/8.4.0\\r\\n              ← "User-Agent: " prefix   │
    │  Accept-Encoding: gzip\\r\\n               ← "Accept-Encoding: "     │
    │  Content-Length: 5\\r\\n                   ← ignored by the parser   │
    │  \\r\\n                                     ← end of headers          │
    │  hello                                    ← body (POST only)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header matching is by EXACT, case-sensitive prefix. "host: x" is not a
Host header as far as this server is concerned. Any header that does not
match one of the known prefixes is skipped without complaint, and a
missing header simply yields "".

=============================================================================
WHY CONTENT-LENGTH IS NOT USED HERE
=============================================================================

Framing is the Connection's job (core/connection.py). By the time bytes
reach the parser, the connection has already read up to the blank line
and then exactly Content-Length more bytes. So everything after the blank
line IS the body, and the parser takes it verbatim.

=============================================================================
FAILURE MODE
=============================================================================

Anything the parser cannot make sense of raises MalformedRequest. The
server reacts by closing the connection without writing a response.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum


class MalformedRequest(Exception):
    """
    Raised when raw request bytes cannot be parsed.

    Unlike the file store errors, this one never becomes an HTTP response:
    the worker logs it and drops the connection.
    """


class Method(Enum):
    """
    The request methods this server distinguishes.

    Everything that is not GET or POST collapses into OTHER, which the
    router answers with 404.
    """
    GET = "GET"
    POST = "POST"
    OTHER = "OTHER"

    @classmethod
    def from_token(cls, token: str) -> "Method":
        """Map a request-line method token to a Method."""
        try:
            return cls(token)
        except ValueError:
            return cls.OTHER


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:          Method.GET, Method.POST or Method.OTHER
        path:            Request target, always starts with "/"
        version:         Protocol token from the request line ("HTTP/1.1")
        host:            Value of "Host: ", or ""
        user_agent:      Value of "User-Agent: ", or ""
        accept_encoding: Raw value of "Accept-Encoding: ", or ""
        body:            Bytes after the blank line (POST only)
        path_params:     Wildcard captures set by the router
        client_address:  (ip, port) of the peer, for logging
        raw_method:      The literal method token ("PUT", "DELETE", ...)

    =========================================================================
    """

    method: Method
    path: str
    version: str = "HTTP/1.1"

    host: str = ""
    user_agent: str = ""
    accept_encoding: str = ""
    body: bytes = b""

    # Router-injected wildcard captures
    path_params: dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)
    raw_method: str = ""

    def __post_init__(self):
        if not self.raw_method:
            self.raw_method = self.method.value

    @property
    def accepts_gzip(self) -> bool:
        """
        Check whether the client advertised gzip support.

        Plain substring match - "gzip", "deflate, gzip" and
        "invalid-encoding, gzip, br" all qualify. Quality values
        (gzip;q=0) are not interpreted.
        """
        return "gzip" in self.accept_encoding


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Size check               too large → MalformedRequest         │
        │  2. Split head / body        at the first \\r\\n\\r\\n              │
        │  3. Request line             exactly 3 tokens, path starts "/"    │
        │  4. Known header prefixes    Host / User-Agent / Accept-Encoding  │
        │  5. Body                     POST only, needs the blank line      │
        └───────────────────────────────────────────────────────────────────┘
              │
              ▼
        HTTPRequest

    ==========================================================================
    """

    # Header prefix → HTTPRequest field it fills
    HEADER_FIELDS = {
        "Host: ": "host",
        "User-Agent: ": "user_agent",
        "Accept-Encoding: ": "accept_encoding",
    }

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Initialize the request parser.

        Args:
            max_request_size: Largest request (head + body) accepted, in bytes.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            MalformedRequest: If the request cannot be parsed.
        """
        # =====================================================================
        # STEP 1: Reject oversized requests
        # =====================================================================
        if len(data) > self.max_request_size:
            raise MalformedRequest(f"Request too large: {len(data)} bytes")

        if not data:
            raise MalformedRequest("Empty request")

        # =====================================================================
        # STEP 2: Split head and body at the blank line
        # =====================================================================
        # The header block ends with an empty line, i.e. the byte sequence
        # \r\n\r\n. A GET without it is tolerated (headers just run to the
        # end of the data); a POST without it has no locatable body.
        #
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            head, body = data, None
        else:
            head, body = data[:header_end], data[header_end + 4:]

        # Bytes that are not valid UTF-8 survive as lone surrogates, so a
        # path or header value encodes back to exactly the bytes received
        lines = head.decode("utf-8", errors="surrogateescape").split("\r\n")

        # =====================================================================
        # STEP 3: Request line
        # =====================================================================
        raw_method, path, version = self._parse_request_line(lines[0])
        method = Method.from_token(raw_method)

        # =====================================================================
        # STEP 4: Known headers
        # =====================================================================
        fields = self._parse_headers(lines[1:])

        # =====================================================================
        # STEP 5: Body (POST only)
        # =====================================================================
        if method is Method.POST:
            if body is None:
                raise MalformedRequest("POST request has no header terminator")
        else:
            body = b""

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            body=body,
            client_address=client_address,
            raw_method=raw_method,
            **fields,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split the request line into method, path and version.

            "GET /echo/abc HTTP/1.1"
             ─┬─ ────┬──── ───┬────
              │      │        │
            Method  Path   Version

        Raises:
            MalformedRequest: On anything other than three tokens, or a
                              path that does not start with "/".
        """
        tokens = line.split()
        if len(tokens) != 3:
            raise MalformedRequest(f"Invalid request line: {line!r}")

        method, path, version = tokens
        if not path.startswith("/"):
            raise MalformedRequest(f"Invalid request path: {path!r}")

        return method, path, version

    def _parse_headers(self, lines: list[str]) -> dict[str, str]:
        """
        Pick the known headers out of the header lines.

        Stops at the first empty line. The first occurrence of each
        known header wins.

        Returns:
            Mapping of HTTPRequest field name → header value.
        """
        fields: dict[str, str] = {}

        for line in lines:
            if not line:
                break
            for prefix, name in self.HEADER_FIELDS.items():
                if line.startswith(prefix) and name not in fields:
                    fields[name] = line[len(prefix):]
                    break

        return fields


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request in one call.

    Args:
        data: Raw HTTP request bytes.
        client_address: Client's (ip, port) tuple.
        max_size: Maximum allowed request size.

    Returns:
        Parsed HTTPRequest object.
    """
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
