"""
Registry of document image managers.

One manager per document path, created and loaded on first use. The
registry is an ordinary object: create one per vault and hand it to the
code that needs it.
"""

from loguru import logger

from ..config import Settings
from ..uploaders.base import Uploader
from ..variables import MagicVariableProcessor
from ..vault.base import Vault, normalize_path
from .manager import DocumentImageManager


class ImageManagerFactory:
    """Creates, caches and re-keys DocumentImageManager instances."""

    def __init__(
        self,
        vault: Vault,
        settings: Settings,
        uploader: Uploader,
        processor: MagicVariableProcessor | None = None,
    ):
        self.vault = vault
        self.settings = settings
        self.uploader = uploader
        self.processor = processor or MagicVariableProcessor(workspace=vault.name)
        self._managers: dict[str, DocumentImageManager] = {}

    def __contains__(self, md_path: str) -> bool:
        return normalize_path(md_path) in self._managers

    def __len__(self) -> int:
        return len(self._managers)

    async def get_manager(self, md_path: str) -> DocumentImageManager:
        """
        Return the manager for a document, creating and loading it if needed.

        A document without a sidecar gets a manager with no records.
        """
        md_path = normalize_path(md_path)
        manager = self._managers.get(md_path)
        if manager is not None:
            return manager

        manager = DocumentImageManager(
            self.vault,
            self.settings,
            self.uploader,
            md_path,
            processor=self.processor,
        )
        await manager.load_from_json()
        self._managers[md_path] = manager
        logger.debug("Created image manager for {} ({} record(s))", md_path, len(manager.images))
        return manager

    def remove_manager(self, md_path: str) -> None:
        """Forget a document's manager. Files on disk are left alone."""
        if self._managers.pop(normalize_path(md_path), None) is not None:
            logger.debug("Dropped image manager for {}", md_path)

    async def rename_manager(self, old_path: str, new_path: str) -> bool:
        """
        Move a cached manager to a renamed document.

        The cache is re-keyed only if the manager's asset folder moved
        successfully.

        Returns:
            False if no manager is cached for ``old_path`` or the move failed
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        manager = self._managers.get(old_path)
        if manager is None:
            return False

        success = await manager.rename_image_folder(new_path)
        if success:
            del self._managers[old_path]
            self._managers[new_path] = manager
            logger.debug("Re-keyed image manager {} -> {}", old_path, new_path)
        return success

    def get_all_managers(self) -> list[DocumentImageManager]:
        """Return every cached manager."""
        return list(self._managers.values())
