"""
=============================================================================
FILE STORE
=============================================================================

Backs the /files/<name> routes: maps a resource name onto a path under
the configured root, and reads or writes whole files there.

=============================================================================
NAME → PATH
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   root            name             resolved path                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │   "/tmp/data/"    "report.txt"     "/tmp/data/report.txt"           │
    │   "/tmp/data"     "report.txt"     "/tmp/data/report.txt"           │
    │   "/tmp/data"     "a/./b.txt"      "/tmp/data/a/b.txt"              │
    │   ""              "report.txt"     "report.txt"  (cwd-relative)     │
    ├─────────────────────────────────────────────────────────────────────┤
    │   "/tmp/data"     ""               "/tmp/data"  (a directory: 404)  │
    │   any             "../etc/passwd"  InvalidFileName                  │
    │   any             "/etc/passwd"    InvalidFileName  (absolute)      │
    │   any             "a\\x00b"        InvalidFileName  (NUL)           │
    └─────────────────────────────────────────────────────────────────────┘

Exactly one "/" separates root and name. With a non-empty root, the real
path (symlinks followed) must also stay inside the real root, so a
symlink inside the root pointing elsewhere is rejected too.

=============================================================================
ERRORS
=============================================================================

    FileStoreError
    ├── FileNotFound      → 404   missing, not a regular file, or unreadable
    ├── InvalidFileName   → 400   name escapes the root
    └── FileWriteError    → 500   open/write failed (e.g. missing directory)

No locking: two concurrent writes to the same name race at the
filesystem level, and the last writer wins.

=============================================================================
"""

import os
import logging

from .config import StoreConfig


logger = logging.getLogger(__name__)


class FileStoreError(Exception):
    """Base class for file store failures."""


class FileNotFound(FileStoreError):
    """The named file does not exist or cannot be read."""


class InvalidFileName(FileStoreError):
    """The name is empty or would resolve outside the store root."""


class FileWriteError(FileStoreError):
    """The file could not be created or written."""


class FileStore:
    """
    Whole-file reads and writes under a single root directory.

    Usage:
        store = FileStore(StoreConfig(root="/tmp/data"))

        store.write("report.txt", b"hello")
        store.read("report.txt")   # b"hello"
    """

    def __init__(self, config: StoreConfig):
        self.config = config

    @property
    def root(self) -> str:
        return self.config.root

    def resolve(self, name: str) -> str:
        """
        Map a resource name to a filesystem path.

        An empty name (or one that normalizes to ".") resolves to the root
        itself. That is a directory, so read() gives FileNotFound and
        write() gives FileWriteError.

        Args:
            name: The part of the URL path after "/files/".

        Returns:
            The path to open.

        Raises:
            InvalidFileName: If the name is absolute, contains NUL, or
                             would escape the root.
        """
        if "\x00" in name:
            raise InvalidFileName(f"Invalid file name: {name!r}")

        if os.path.isabs(name):
            raise InvalidFileName(f"Absolute file name: {name!r}")

        normalized = os.path.normpath(name) if name else os.curdir
        if normalized == os.pardir or \
                normalized.startswith(os.pardir + os.sep):
            raise InvalidFileName(f"File name escapes root: {name!r}")

        root = self.root
        if not root:
            return normalized

        if normalized == os.curdir:
            path = root
        elif root.endswith("/"):
            path = root + normalized
        else:
            path = root + "/" + normalized

        # Symlinks inside the root may still point outside it
        real_root = os.path.realpath(root)
        real_path = os.path.realpath(path)
        if os.path.commonpath([real_root, real_path]) != real_root:
            raise InvalidFileName(f"File name escapes root: {name!r}")

        return path

    def read(self, name: str) -> bytes:
        """
        Read a whole file.

        Raises:
            InvalidFileName: See resolve().
            FileNotFound: If the path is missing, not a regular file,
                          or cannot be opened.
        """
        path = self.resolve(name)

        if not os.path.isfile(path):
            raise FileNotFound(f"No such file: {path}")

        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            raise FileNotFound(f"Cannot read file: {path}") from e

    def write(self, name: str, data: bytes) -> None:
        """
        Create or truncate a file and write data to it.

        Parent directories are NOT created; writing into a missing
        directory is a FileWriteError.

        Raises:
            InvalidFileName: See resolve().
            FileWriteError: On any OSError while opening or writing.
        """
        path = self.resolve(name)

        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise FileWriteError(f"Cannot write {path}: {e}") from e

        logger.debug(f"Wrote {len(data)} bytes to {path}")
