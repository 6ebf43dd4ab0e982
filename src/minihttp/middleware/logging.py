"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Writes one access-log line per routed request.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       TWO OUTPUT FORMATS                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  text (Apache-like):                                                 │
    │    127.0.0.1 - - [17/Oct/2026:10:15:32 +0000] "GET /echo/abc"        │
    │    200 3 0.41ms                                                      │
    │                                                                      │
    │  json (one object per line):                                         │
    │    {"request_id": "5f2a9c1e", "method": "GET", "path": "/echo/abc",  │
    │     "client_ip": "127.0.0.1", "status_code": 200, ...}               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The request ID lives only in the log. It is never echoed back as a
response header, so the wire response carries exactly the headers the
handler and the compression middleware set.

Dropped connections (malformed requests, timeouts) never reach the
middleware chain, so they do not show up here. The server logs those
separately.

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import dataclass, asdict
from typing import Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Namespaced so the access log can be routed on its own:
#   logging.getLogger("minihttp.access").addHandler(file_handler)
logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """
    Structured access-log entry.

    Fields:
        request_id:     Short random ID correlating log lines
        method:         Literal method token ("GET", "PUT", ...)
        path:           Request path
        client_ip:      Peer IP address
        user_agent:     User-Agent value, "-" if absent
        status_code:    Response status code
        content_length: Bytes of body actually sent (post-compression)
        encoding:       "gzip" or "-"
        duration_ms:    Time spent in the handler chain
        timestamp:      Local time, Apache format
    """

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    encoding: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Belongs FIRST in the pipeline, so that its timing covers the whole
    chain and the size it records is the compressed one.

    Usage:
        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        """
        Initialize logging middleware.

        Args:
            log_format: "text" (Apache-like) or "json".
            log_level: Level the access lines are emitted at.
            skip_paths: Exact paths not to log (e.g. ["/"] for health checks).
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"Invalid log format: {log_format}")

        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] {request.raw_method} {request.path} failed: "
                f"{type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.raw_method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            encoding=response.headers.get("Content-Encoding", "-"),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
