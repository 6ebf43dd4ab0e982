"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

Negotiates gzip content-encoding for text responses.

=============================================================================
NEGOTIATION
=============================================================================

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /echo/abc HTTP/1.1                                        │
    │ Accept-Encoding: invalid-encoding, gzip                       │
    │                                           ────┬───            │
    │                        "gzip" appears anywhere in the value   │
    └───────────────────────────────────────────────────────────────┘

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Type: text/plain                                      │
    │ Content-Length: 23        (compressed size)                   │
    │ Content-Encoding: gzip                                        │
    │                                                               │
    │ [gzip compressed body]                                        │
    └───────────────────────────────────────────────────────────────┘

The check is a plain, case-sensitive substring test on the raw header
value. "GZIP" does not count, and "gzip;q=0" does. Every other encoding
name is ignored.

=============================================================================
WHAT GETS COMPRESSED
=============================================================================

    ┌──────────────────────────────┬──────────────┐
    │ Response                     │ Compressed?  │
    ├──────────────────────────────┼──────────────┤
    │ text/plain (echo, user-agent)│ yes          │
    │ application/octet-stream     │ never        │
    │ no Content-Type (GET /, 404) │ never        │
    │ Content-Encoding already set │ never        │
    └──────────────────────────────┴──────────────┘

There is no size threshold: a three-byte echo grows to about twenty
bytes once gzipped, and an empty echo (GET /echo/) becomes a valid
twenty-byte gzip stream of nothing. That is still what the client asked
for.

=============================================================================
"""

import gzip
import logging
from typing import Optional, Set

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


class CompressionMiddleware(Middleware):
    """
    Gzip response bodies for clients that advertise gzip.

    Usage:
        pipeline.add(CompressionMiddleware())

        # Faster, looser compression
        pipeline.add(CompressionMiddleware(level=1))
    """

    # ─────────────────────────────────────────────────────────────────────
    # COMPRESSIBLE CONTENT TYPES
    # ─────────────────────────────────────────────────────────────────────
    # Text-based types only. File downloads go out as octet-stream and
    # are passed through byte-for-byte.
    # ─────────────────────────────────────────────────────────────────────
    COMPRESSIBLE_TYPES: Set[str] = {
        "text/plain",
        "text/html",
        "text/css",
        "text/xml",
        "text/javascript",
        "application/json",
        "application/xml",
    }

    def __init__(
        self,
        level: int = 9,
        compressible_types: Optional[Set[str]] = None,
    ):
        """
        Initialize compression middleware.

        Args:
            level: gzip compression level, 1 (fastest) to 9 (smallest).
                   9 is also what gzip.compress() uses by default.
            compressible_types: Base content types eligible for gzip.
                                Defaults to COMPRESSIBLE_TYPES.
        """
        if not 1 <= level <= 9:
            raise ValueError(f"Invalid compression level: {level}")

        self.level = level
        self.compressible_types = compressible_types or self.COMPRESSIBLE_TYPES

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if not request.accepts_gzip:
            return response

        if not self._should_compress(response):
            return response

        original_size = len(response.body)
        response.body = gzip.compress(response.body, compresslevel=self.level)

        # Content-Length always describes the bytes actually sent
        response.set_header("Content-Encoding", "gzip")
        response.set_header("Content-Length", str(len(response.body)))

        logger.debug(
            f"gzip {request.path}: {original_size} → {len(response.body)} bytes"
        )
        return response

    def _should_compress(self, response: HTTPResponse) -> bool:
        """
        Check whether a response is eligible for gzip.

        Args:
            response: The HTTP response from the router.

        Returns:
            True for a not-yet-encoded, text-typed body (empty included).
        """
        if "Content-Encoding" in response.headers:
            return False

        # "text/plain; charset=utf-8" → "text/plain"
        content_type = response.headers.get("Content-Type", "")
        base_type = content_type.split(";")[0].strip().lower()

        return base_type in self.compressible_types
