"""Filesystem collaborator used by the engine to resolve and read templates.

The engine only needs two operations, so it takes them through this small
interface. Tests substitute an in-memory implementation to exercise
resolution without touching disk, or to count reads.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class FileSystem(Protocol):
    """Read access to template files."""

    def exists(self, path: str) -> bool:
        """Return True if ``path`` names an existing regular file."""
        ...

    def read_text(self, path: str) -> str:
        """Return the full contents of ``path``.

        Raises:
            OSError: If the file cannot be opened or read
        """
        ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def read_text(self, path: str) -> str:
        return Path(path).read_text(encoding=self.encoding)
