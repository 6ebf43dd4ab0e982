"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler function. Two kinds of pattern:

- Exact paths:      /            /user-agent
- Prefix wildcards: /echo/*text  /files/*name

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /echo/abc                                                      │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  Registered routes, tried IN ORDER:                         │   │
    │   │    GET  /             → root                                │   │
    │   │    GET  /echo/*text   → echo           ← MATCH, text="abc"  │   │
    │   │    GET  /user-agent   → user_agent                          │   │
    │   │    GET  /files/*name  → read_file                           │   │
    │   │    POST /files/*name  → write_file                          │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   request.path_params = {"text": "abc"}                              │
    │   echo(request)                                                      │
    │                                                                      │
    │   No match (wrong path OR wrong method) → 404 Not Found              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

First registered, first matched. The application's prefixes never
overlap, so order only matters in that "/" must be an exact match and
never swallow everything below it.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest, Method
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

        @router.get("/files/*name")
        def read_file(request): ...

        Route(
            path="/files/*name",
            method=Method.GET,
            handler=read_file,
            _pattern=re.compile(r"^/files/(?P<name>.*)$"),
        )
    """

    path: str
    method: Method
    handler: Handler

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)


@dataclass
class RouteMatch:
    """
    Result of a successful route match.

        Pattern: /echo/*text
        Path:    /echo/hello
        Result:  RouteMatch(route=<Route>, params={"text": "hello"})
    """
    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router with exact and prefix-wildcard paths.

    ==========================================================================
    DECORATOR-BASED API
    ==========================================================================

        router = Router()

        @router.get("/")
        def root(request):
            return ok()

        @router.get("/echo/*text")
        def echo(request):
            return ResponseBuilder().text(request.path_params["text"]).build()

    ==========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, path: str, handler: Handler, method: Method) -> Route:
        """
        Register a route.

        Args:
            path: Exact path ("/user-agent") or prefix wildcard ("/echo/*text")
            handler: Function that takes a request and returns a response
            method: Method.GET or Method.POST

        Returns:
            The registered Route object
        """
        route = Route(
            path=path,
            method=method,
            handler=handler,
            _pattern=self._compile_pattern(path),
        )
        self._routes.append(route)
        logger.debug(f"Registered route {method.value} {path}")
        return route

    def _compile_pattern(self, path: str) -> re.Pattern:
        """
        Compile a path pattern into an anchored regex.

        =====================================================================
        PATTERN COMPILATION
        =====================================================================

            "/"             → ^/$
            "/user-agent"   → ^/user\\-agent$
            "/echo/*text"   → ^/echo/(?P<text>.*)$

        A "*name" segment must be last and captures EVERYTHING after the
        prefix, slashes included - "/files/a/b.txt" gives name="a/b.txt".
        The trailing slash of the prefix stays literal, so "/echo" alone
        does not match "/echo/*text" but "/echo/" does (with text="").

        =====================================================================
        """
        star = path.find("*")
        if star == -1:
            return re.compile("^" + re.escape(path) + "$")

        prefix, param_name = path[:star], path[star + 1:]
        return re.compile(
            "^" + re.escape(prefix) + f"(?P<{param_name or 'wildcard'}>.*)$",
            re.DOTALL,
        )

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: Method, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        Returns:
            RouteMatch if found, None otherwise
        """
        for route in self._routes:
            if route.method is not method:
                continue

            found = route._pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        Unknown paths and unsupported methods both get 404 - there is
        deliberately no 405 here.
        """
        found = self.match(request.method, request.path)
        if found is None:
            return not_found()

        request.path_params = found.params
        return found.route.handler(request)

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(self, path: str, method: Method) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, Method.GET)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, Method.POST)

    def routes(self) -> List[Route]:
        """All registered routes, in match order."""
        return list(self._routes)
