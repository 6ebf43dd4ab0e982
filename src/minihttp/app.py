"""
=============================================================================
APPLICATION ROUTES
=============================================================================

The fixed routing table, in match order:

    ┌────────┬────────────────┬──────────────────────────────────────────┐
    │ Method │ Pattern        │ Handler                                  │
    ├────────┼────────────────┼──────────────────────────────────────────┤
    │ GET    │ /              │ root           200, no headers           │
    │ GET    │ /echo/*text    │ echo           200 text/plain            │
    │ GET    │ /user-agent    │ user_agent     200 text/plain            │
    │ GET    │ /files/*name   │ files.download 200 octet-stream / 404    │
    │ POST   │ /files/*name   │ files.upload   201 / 500                 │
    └────────┴────────────────┴──────────────────────────────────────────┘

Anything else, including any method besides GET and POST, falls through
to the router's bare 404.

=============================================================================
"""

from .http.router import Router
from .handlers import FileHandler, root, echo, user_agent
from .storage import FileStore


def create_router(store: FileStore) -> Router:
    """
    Build the application router.

    Args:
        store: File store backing /files/*.

    Returns:
        A Router with every route registered.
    """
    router = Router()
    files = FileHandler(store)

    router.get("/")(root)
    router.get("/echo/*text")(echo)
    router.get("/user-agent")(user_agent)
    router.get("/files/*name")(files.download)
    router.post("/files/*name")(files.upload)

    return router
