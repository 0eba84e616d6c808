"""
Abstract base class for vault filesystems.

All paths are vault-relative, POSIX-style strings; the vault root is "".
"""

import posixpath
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

_SLASHES = re.compile(r"/+")


def normalize_path(path: str) -> str:
    """
    Normalize a vault path.

    Backslashes become slashes, duplicate slashes collapse, ``.`` and ``..``
    segments are resolved and leading or trailing slashes are dropped.

    Args:
        path: Raw path

    Returns:
        Normalized vault path ("" for the root)
    """
    path = _SLASHES.sub("/", path.replace("\\", "/")).strip("/")
    if not path:
        return ""
    path = posixpath.normpath(path)
    return "" if path == "." else path


class FileStat(BaseModel):
    """Metadata of a vault entry."""

    type: Literal["file", "folder"] = Field(description="Entry kind")
    size: int = Field(default=0, description="Size in bytes (0 for folders)")
    ctime: int = Field(default=0, description="Creation time in epoch milliseconds")
    mtime: int = Field(default=0, description="Modification time in epoch milliseconds")


class ListedFiles(BaseModel):
    """Direct children of a vault folder."""

    files: list[str] = Field(default_factory=list, description="Vault paths of files")
    folders: list[str] = Field(default_factory=list, description="Vault paths of sub-folders")


class Vault(ABC):
    """Abstract interface for the filesystem documents and images live in."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the vault (workspace) name."""
        pass

    @abstractmethod
    def get_full_path(self, path: str) -> Path:
        """Return the absolute on-disk location of a vault path."""
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a file or folder exists."""
        pass

    @abstractmethod
    async def read(self, path: str) -> str:
        """Read a text file."""
        pass

    @abstractmethod
    async def write(self, path: str, data: str) -> None:
        """Write a text file, replacing any previous content."""
        pass

    @abstractmethod
    async def read_binary(self, path: str) -> bytes:
        """Read a binary file."""
        pass

    @abstractmethod
    async def write_binary(self, path: str, data: bytes) -> None:
        """Write a binary file, replacing any previous content."""
        pass

    @abstractmethod
    async def mkdir(self, path: str) -> None:
        """Create a folder and any missing parents."""
        pass

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete a file."""
        pass

    @abstractmethod
    async def rmdir(self, path: str, recursive: bool = False) -> None:
        """
        Delete a folder.

        Args:
            path: Folder to delete
            recursive: Delete the folder's content as well
        """
        pass

    @abstractmethod
    async def list(self, path: str) -> ListedFiles:
        """List the direct children of a folder."""
        pass

    @abstractmethod
    async def stat(self, path: str) -> FileStat | None:
        """Return metadata for a path, or None if it does not exist."""
        pass

    @abstractmethod
    async def rename(self, path: str, new_path: str) -> None:
        """Move a file or folder to a new path."""
        pass
