"""
=============================================================================
REQUEST HANDLERS
=============================================================================

The functions the router dispatches to.

1. root / echo / user_agent  (basic.py)
   - Stateless, built straight from the parsed request

2. FileHandler  (files.py)
   - download() and upload() for /files/<name>, backed by a FileStore
   - Maps store errors onto 400 / 404 / 500

=============================================================================
USAGE
=============================================================================

    from minihttp.handlers import FileHandler, echo

    router.get("/echo/*text")(echo)

    files = FileHandler(store)
    router.get("/files/*name")(files.download)
    router.post("/files/*name")(files.upload)

See minihttp.app.create_router() for the full table.

=============================================================================
"""

from .basic import root, echo, user_agent
from .files import FileHandler

__all__ = [
    "root",
    "echo",
    "user_agent",
    "FileHandler",
]
