"""Vault implementation backed by a local directory."""

import shutil
from pathlib import Path

from loguru import logger

from .base import FileStat, ListedFiles, Vault, normalize_path


class LocalVault(Vault):
    """Vault stored in a directory on the local disk."""

    def __init__(self, root: Path | str, name: str | None = None):
        """
        Initialize the vault.

        Args:
            root: Vault root directory (created if missing)
            name: Workspace name; defaults to the root directory name
        """
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._name = name or self.root.name
        logger.debug("LocalVault opened: root={}, name={}", self.root, self._name)

    @property
    def name(self) -> str:
        return self._name

    def get_full_path(self, path: str) -> Path:
        """
        Map a vault path onto the disk.

        Raises:
            ValueError: If the path points outside the vault root
        """
        full_path = (self.root / normalize_path(path)).resolve()
        if full_path != self.root and self.root not in full_path.parents:
            raise ValueError(f"Path escapes the vault: {path}")
        return full_path

    def _to_vault_path(self, full_path: Path) -> str:
        return full_path.relative_to(self.root).as_posix()

    async def exists(self, path: str) -> bool:
        return self.get_full_path(path).exists()

    async def read(self, path: str) -> str:
        return self.get_full_path(path).read_text(encoding="utf-8")

    async def write(self, path: str, data: str) -> None:
        self.get_full_path(path).write_text(data, encoding="utf-8")

    async def read_binary(self, path: str) -> bytes:
        return self.get_full_path(path).read_bytes()

    async def write_binary(self, path: str, data: bytes) -> None:
        self.get_full_path(path).write_bytes(data)

    async def mkdir(self, path: str) -> None:
        self.get_full_path(path).mkdir(parents=True, exist_ok=True)

    async def remove(self, path: str) -> None:
        self.get_full_path(path).unlink()

    async def rmdir(self, path: str, recursive: bool = False) -> None:
        full_path = self.get_full_path(path)
        if full_path == self.root:
            raise ValueError("Refusing to remove the vault root")
        if recursive:
            shutil.rmtree(full_path)
        else:
            full_path.rmdir()

    async def list(self, path: str) -> ListedFiles:
        listing = ListedFiles()
        for child in sorted(self.get_full_path(path).iterdir()):
            if child.is_dir():
                listing.folders.append(self._to_vault_path(child))
            else:
                listing.files.append(self._to_vault_path(child))
        return listing

    async def stat(self, path: str) -> FileStat | None:
        full_path = self.get_full_path(path)
        if not full_path.exists():
            return None
        info = full_path.stat()
        is_dir = full_path.is_dir()
        return FileStat(
            type="folder" if is_dir else "file",
            size=0 if is_dir else info.st_size,
            ctime=int(info.st_ctime * 1000),
            mtime=int(info.st_mtime * 1000),
        )

    async def rename(self, path: str, new_path: str) -> None:
        target = self.get_full_path(new_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.get_full_path(path).rename(target)
