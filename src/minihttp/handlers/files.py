"""
=============================================================================
FILE HANDLER
=============================================================================

GET and POST for /files/<name>, on top of FileStore.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         /files/<name>                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET  /files/report.txt                                             │
    │        store.read("report.txt")                                      │
    │          ├── bytes           → 200 application/octet-stream          │
    │          ├── FileNotFound    → 404 (bare)                            │
    │          └── InvalidFileName → 400                                   │
    │                                                                      │
    │   POST /files/report.txt   body=b"hello"                             │
    │        store.write("report.txt", b"hello")                           │
    │          ├── ok              → 201 Created                           │
    │          ├── FileWriteError  → 500                                   │
    │          └── InvalidFileName → 400                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Downloads are octet-stream regardless of extension, so the compression
middleware never touches them and the client gets the stored bytes
exactly.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder,
    created, not_found, bad_request, internal_error,
)
from ..storage import FileStore, FileNotFound, InvalidFileName, FileWriteError


logger = logging.getLogger(__name__)


class FileHandler:
    """
    Serves and stores files through a FileStore.

    Usage:
        files = FileHandler(FileStore(config.store))

        router.get("/files/*name")(files.download)
        router.post("/files/*name")(files.upload)
    """

    def __init__(self, store: FileStore, param: str = "name"):
        """
        Args:
            store: The backing file store.
            param: Name of the route wildcard holding the file name.
        """
        self.store = store
        self.param = param

    def _file_name(self, request: HTTPRequest) -> str:
        return request.path_params.get(self.param, "")

    def download(self, request: HTTPRequest) -> HTTPResponse:
        """GET /files/<name>: return the file's bytes."""
        name = self._file_name(request)

        try:
            content = self.store.read(name)
        except InvalidFileName as e:
            logger.warning(f"Rejected file name from {request.client_address[0]}: {e}")
            return bad_request()
        except FileNotFound:
            return not_found()

        return ResponseBuilder().octet_stream(content).build()

    def upload(self, request: HTTPRequest) -> HTTPResponse:
        """POST /files/<name>: store the request body."""
        name = self._file_name(request)

        try:
            self.store.write(name, request.body)
        except InvalidFileName as e:
            logger.warning(f"Rejected file name from {request.client_address[0]}: {e}")
            return bad_request()
        except FileWriteError as e:
            logger.error(str(e))
            return internal_error()

        return created()
