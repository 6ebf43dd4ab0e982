"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

A middleware sits between the connection worker and the router. It sees
the parsed request on the way in and the HTTPResponse on the way out,
and may rewrite either.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     REQUEST / RESPONSE FLOW                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPRequest ───────────────────────────────────────────►          │
    │                                                                      │
    │   ┌──────────────┐    ┌──────────────┐    ┌──────────────┐          │
    │   │   Logging    │───►│ Compression  │───►│    Router    │          │
    │   └──────┬───────┘    └──────┬───────┘    └──────┬───────┘          │
    │          │                   │                   │                   │
    │     start timer          (nothing)          pick handler             │
    │          ▲                   ▲                   │                   │
    │          │                   │                   ▼                   │
    │     write access        gzip body if        HTTPResponse             │
    │     log line            client allows                                │
    │                                                                      │
    │   ◄─────────────────────────────────────────────── HTTPResponse     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware gets the request plus a `next` callable, and decides
whether and when to call it.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware in the chain, or the router itself at the end
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement __call__:

        class Timing(Middleware):
            def __call__(self, request, next):
                started = time.perf_counter()
                response = next(request)
                logger.debug(f"took {time.perf_counter() - started:.3f}s")
                return response

    Returning without calling next() short-circuits the chain.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The parsed HTTP request
            next: The rest of the chain; call it to reach the router

        Returns:
            HTTP response
        """

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    An ordered list of middleware wrapped around a final handler.

    =========================================================================
    ORDERING
    =========================================================================

        pipeline.add(LoggingMiddleware())       # first added = outermost
        pipeline.add(CompressionMiddleware())   # closest to the router

        handler = pipeline.wrap(router.handle)

            ┌───────────────────────────────────────────────┐
            │  LoggingMiddleware                            │
            │  ┌─────────────────────────────────────────┐  │
            │  │  CompressionMiddleware                  │  │
            │  │  ┌───────────────────────────────────┐  │  │
            │  │  │          router.handle            │  │  │
            │  │  └───────────────────────────────────┘  │  │
            │  └─────────────────────────────────────────┘  │
            └───────────────────────────────────────────────┘

    The logger is outermost, so the status and Content-Length it records
    are the ones that actually go on the wire (after compression).

    =========================================================================
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Append middleware. Returns self for chaining.

        Args:
            middleware: Middleware instance to add
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware at once, in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every middleware in the pipeline.

        Wraps in reverse so that the first-added middleware ends up
        outermost:

            [A, B, C] + handler  →  A(B(C(handler)))

        Args:
            handler: The final request handler (normally router.handle)

        Returns:
            A single callable that runs the whole chain
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        # Closure over this middleware and the rest of the chain
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
