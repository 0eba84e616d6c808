"""
Per-document image bookkeeping.

A DocumentImageManager owns the images embedded in one document: the copies
kept in the document's asset folder and the sidecar JSON file recording them.
The sidecar and the asset folder exist exactly when the document has images.
"""

import json
import posixpath
from collections.abc import Iterable
from io import BytesIO

from loguru import logger
from PIL import Image as PILImage
from rich.console import Console
from rich.markup import escape

from ..config import Settings
from ..uploaders.base import UploadCallbacks, UploadError, Uploader
from ..variables import MagicVariableProcessor
from ..vault.base import Vault, normalize_path
from .base import ImageOperation, ImageRecord, SidecarFile, now_ms
from .fetch import fetch_image, file_name_from_url

console = Console()


def report_error(message: str, error: BaseException) -> None:
    """Log a failure and show it on the console."""
    logger.error("{}: {}", message, error)
    console.print(f"[red]{escape(message)}: {escape(str(error))}[/]")


def report_warning(message: str) -> None:
    """Log a recoverable problem and show it on the console."""
    logger.warning(message)
    console.print(f"[yellow]Warning: {escape(message)}[/]")


def probe_dimensions(data: bytes) -> tuple[int, int] | None:
    """Return (width, height) if Pillow can read the image, else None."""
    try:
        with PILImage.open(BytesIO(data)) as img:
            return img.size
    except Exception as e:
        logger.debug("Could not read image dimensions: {}", e)
        return None


async def available_path(
    vault: Vault,
    folder: str,
    file_name: str,
    reserved: Iterable[str] = (),
) -> str:
    """
    Pick a path in ``folder`` for ``file_name`` that does not clash.

    A clash is an existing file or a path in ``reserved``. On a clash a
    millisecond timestamp is appended to the stem, then a counter.
    """
    taken = set(reserved)
    candidate = normalize_path(posixpath.join(folder, file_name))
    if candidate not in taken and not await vault.exists(candidate):
        return candidate

    stem, ext = posixpath.splitext(file_name)
    stamped = f"{stem}_{now_ms()}"
    candidate = normalize_path(posixpath.join(folder, f"{stamped}{ext}"))
    counter = 1
    while candidate in taken or await vault.exists(candidate):
        candidate = normalize_path(posixpath.join(folder, f"{stamped}_{counter}{ext}"))
        counter += 1
    return candidate


class DocumentImageManager:
    """Tracks the images of one document and keeps its sidecar file in sync."""

    def __init__(
        self,
        vault: Vault,
        settings: Settings,
        uploader: Uploader,
        md_path: str,
        processor: MagicVariableProcessor | None = None,
    ):
        """
        Initialize the manager. Call ``load_from_json`` to read existing records.

        Args:
            vault: Filesystem holding the document and its images
            settings: Templates and upload behaviour
            uploader: Upload backend
            md_path: Vault path of the document
            processor: Magic variable processor; one bound to the vault name by default
        """
        self.vault = vault
        self.settings = settings
        self.uploader = uploader
        self.processor = processor or MagicVariableProcessor(workspace=vault.name)
        self.images: dict[str, ImageRecord] = {}
        self._md_path = normalize_path(md_path)
        self._image_folder_path = self._resolve_image_folder(self._md_path)

    @property
    def md_path(self) -> str:
        """Vault path of the owning document."""
        return self._md_path

    @property
    def image_folder_path(self) -> str:
        """Asset folder holding the images and the sidecar file."""
        return self._image_folder_path

    @property
    def sidecar_path(self) -> str:
        """Location of the sidecar JSON file."""
        return self._sidecar_path(self._image_folder_path, self._md_path)

    def _resolve_image_folder(self, md_path: str) -> str:
        relative = self.processor.render(self.settings.temp_folder_path, md_path)
        return normalize_path(posixpath.join(posixpath.dirname(md_path), relative))

    @staticmethod
    def _sidecar_path(folder: str, md_path: str) -> str:
        name = posixpath.basename(md_path)
        if name.endswith(".md"):
            name = name[:-3]
        return normalize_path(posixpath.join(folder, f"{name}.json"))

    def _document_dir(self) -> str:
        return normalize_path(posixpath.dirname(self._md_path))

    # --- Persistence ---

    async def load_from_json(self) -> bool:
        """
        Replace the in-memory records with the sidecar file's content.

        Returns:
            True if a sidecar was loaded; False if there is none or it is malformed
        """
        json_path = self.sidecar_path
        try:
            if not await self.vault.exists(json_path):
                logger.debug("No sidecar for {} at {}", self._md_path, json_path)
                return False
            sidecar = SidecarFile.model_validate_json(await self.vault.read(json_path))
        except Exception as e:
            report_error(f"Could not load image sidecar {json_path}", e)
            return False

        self.images = dict(sidecar.images)
        logger.debug("Loaded {} image record(s) for {}", len(self.images), self._md_path)
        return True

    async def save_to_json(self) -> bool:
        """
        Bring the sidecar file and asset folder in line with the records.

        With records, the folder is created if needed and the sidecar written.
        Without records, the sidecar is deleted and so is the folder once
        nothing else is left in it. Each step is idempotent, so a
        failed save can simply be repeated.

        Returns:
            True on success, False if a filesystem call failed
        """
        try:
            if self.images:
                await self._write_sidecar()
            else:
                await self._clear_sidecar()
            return True
        except Exception as e:
            report_error(f"Could not save image sidecar {self.sidecar_path}", e)
            return False

    async def _write_sidecar(self) -> None:
        if not await self.vault.exists(self._image_folder_path):
            await self.vault.mkdir(self._image_folder_path)
        sidecar = SidecarFile(md_path=self._md_path, images=self.images)
        content = json.dumps(sidecar.to_json_dict(), indent=2, sort_keys=True, ensure_ascii=False)
        await self.vault.write(self.sidecar_path, content + "\n")
        logger.debug("Saved {} image record(s) to {}", len(self.images), self.sidecar_path)

    async def _clear_sidecar(self) -> None:
        if await self.vault.exists(self.sidecar_path):
            await self.vault.remove(self.sidecar_path)
        await self._remove_folder_if_unused(self._image_folder_path, self._md_path)

    async def _remove_folder_if_unused(self, folder: str, md_path: str) -> bool:
        """
        Delete an asset folder that no longer holds any file.

        The document's own directory (empty folder template) is never
        deleted, and neither is a folder other documents still keep files in.

        Returns:
            True if the folder was deleted
        """
        if not folder or folder == normalize_path(posixpath.dirname(md_path)):
            return False
        if not await self.vault.exists(folder):
            return False
        remaining = await self._list_files(folder)
        if remaining:
            logger.debug("Keeping asset folder {}: {} other file(s) left", folder, len(remaining))
            return False
        await self.vault.rmdir(folder, recursive=True)
        logger.debug("Removed empty asset folder {}", folder)
        return True

    # --- Records ---

    async def add_image(self, source_path: str) -> str:
        """
        Copy an image into the asset folder and start tracking it.

        Args:
            source_path: Vault path of the image to add

        Returns:
            The remote URL if auto-upload succeeded, otherwise the new local
            path relative to the document's directory

        Raises:
            Exception: Any failure while copying the file
        """
        source_path = normalize_path(source_path)
        try:
            data = await self.vault.read_binary(source_path)
            if not await self.vault.exists(self._image_folder_path):
                await self.vault.mkdir(self._image_folder_path)
            target_path = await available_path(
                self.vault,
                self._image_folder_path,
                posixpath.basename(source_path),
                reserved=self.images,
            )
            await self.vault.write_binary(target_path, data)
        except Exception as e:
            report_error(f"Could not add image {source_path}", e)
            raise

        record = ImageRecord.create(target_path)
        record.original_name = posixpath.basename(source_path)
        try:
            stat = await self.vault.stat(target_path)
            if stat:
                record.size = stat.size
        except Exception as e:
            logger.debug("Could not stat {}: {}", target_path, e)
        dimensions = probe_dimensions(data)
        if dimensions:
            record.width, record.height = dimensions

        self.images[target_path] = record
        logger.info("[{}] {} -> {}", ImageOperation.ADD.value, source_path, target_path)
        await self.save_to_json()

        if self.settings.is_auto_upload and await self.upload_image(target_path):
            return record.remote_path

        return self.get_relative_path(target_path)

    async def remove_image(self, local_path: str) -> bool:
        """
        Delete an image file and forget its record.

        The record is dropped even when deleting the file fails.

        Returns:
            True if the image was known and everything succeeded
        """
        record = self.images.get(local_path)
        if record is None:
            return False

        file_removed = True
        try:
            if await self.vault.exists(local_path):
                await self.vault.remove(local_path)
        except Exception as e:
            report_error(f"Could not delete image {local_path}", e)
            file_removed = False

        del self.images[local_path]
        logger.info("[{}] {}", ImageOperation.REMOVE.value, local_path)
        saved = await self.save_to_json()
        return file_removed and saved

    # --- Upload and download ---

    def _upload_callbacks(self, local_path: str) -> UploadCallbacks:
        name = posixpath.basename(local_path)
        return UploadCallbacks(
            on_start=lambda: console.print(f"[blue]Uploading {escape(name)}[/]"),
            on_progress=lambda message: logger.debug("Upload progress: {}", message),
            on_error=lambda message: logger.warning("Upload error for {}: {}", name, message),
            on_success=lambda result: logger.debug("Upload result for {}: {}", name, result),
        )

    async def upload_image(self, local_path: str) -> bool:
        """
        Upload one tracked image and record its URL.

        Already uploaded images count as success without calling the uploader.

        Returns:
            True if the image has a durably recorded remote URL afterwards
        """
        record = self.images.get(local_path)
        if record is None:
            return False
        if record.is_uploaded:
            return True

        try:
            full_path = self.vault.get_full_path(record.local_path or local_path)
            result = await self.uploader.upload(str(full_path), self._upload_callbacks(local_path))
            url = result.split(",")[0].strip()
            if not url:
                raise UploadError("Uploader returned no URL")
        except Exception as e:
            report_error(f"Could not upload image {local_path}", e)
            return False

        record.remote_path = url
        record.is_uploaded = True
        record.modify_time = now_ms()
        logger.info("[{}] {} -> {}", ImageOperation.UPLOAD.value, local_path, url)
        if not await self.save_to_json():
            return False

        if self.settings.is_delete_temp:
            await self._delete_local_copy(local_path, record)

        return True

    async def _delete_local_copy(self, local_path: str, record: ImageRecord) -> None:
        try:
            if await self.vault.exists(local_path):
                await self.vault.remove(local_path)
        except Exception as e:
            report_error(f"Could not delete local copy {local_path}", e)
            return
        record.local_deleted = True
        logger.debug("Deleted local copy of uploaded image {}", local_path)
        await self.save_to_json()

    async def upload_all_images(self) -> bool:
        """
        Upload every image that has not been uploaded yet.

        Each image is attempted independently and persisted as soon as it
        succeeds.

        Returns:
            True only if every attempted upload succeeded
        """
        pending = [path for path, record in self.images.items() if not record.is_uploaded]
        logger.debug("Uploading {} of {} image(s) for {}", len(pending), len(self.images), self._md_path)

        all_success = True
        for path in pending:
            success = await self.upload_image(path)
            all_success = all_success and success
        return all_success

    async def _download_image(self, url: str, reserved: Iterable[str]) -> str:
        content, content_type = await fetch_image(
            url,
            timeout=self.settings.download_timeout,
            retries=self.settings.download_retries,
        )
        if not await self.vault.exists(self._image_folder_path):
            await self.vault.mkdir(self._image_folder_path)
        target_path = await available_path(
            self.vault,
            self._image_folder_path,
            file_name_from_url(url, content_type),
            reserved=reserved,
        )
        await self.vault.write_binary(target_path, content)
        return target_path

    async def download_all_images(self) -> bool:
        """
        Download uploaded images whose local copy is missing.

        Downloaded records are re-keyed by their new local path and the
        sidecar is saved once at the end.

        Returns:
            True only if every attempted download succeeded
        """
        all_success = True
        new_keys: dict[str, str] = {}

        for key, record in list(self.images.items()):
            if not record.is_uploaded:
                continue
            if record.local_path and await self.vault.exists(record.local_path):
                continue

            reserved = (set(self.images) | set(new_keys.values())) - {key}
            try:
                new_path = await self._download_image(record.remote_path, reserved)
            except Exception as e:
                report_error(f"Could not download image {record.remote_path}", e)
                all_success = False
                continue

            record.local_path = new_path
            record.local_deleted = False
            record.modify_time = now_ms()
            new_keys[key] = new_path
            logger.info("[{}] {} -> {}", ImageOperation.DOWNLOAD.value, record.remote_path, new_path)

        if new_keys:
            self.images = {new_keys.get(key, key): record for key, record in self.images.items()}

        saved = await self.save_to_json()
        return all_success and saved

    # --- Rename ---

    async def _list_files(self, folder: str) -> list[str]:
        listing = await self.vault.list(folder)
        files = list(listing.files)
        for sub_folder in listing.folders:
            files.extend(await self._list_files(sub_folder))
        return files

    def _rekeyed(self, moved: dict[str, str], old_folder: str, new_folder: str) -> dict[str, ImageRecord]:
        """
        Rebuild the record map in one pass.

        Moved files take their new path. Other keys under ``old_folder``
        (records whose local copy is gone) are relocated to ``new_folder``.
        """
        prefix = f"{old_folder}/" if old_folder else ""
        rebuilt: dict[str, ImageRecord] = {}
        for key, record in self.images.items():
            new_key = moved.get(key)
            if new_key is None:
                if key.startswith(prefix):
                    new_key = normalize_path(posixpath.join(new_folder, key[len(prefix):]))
                else:
                    new_key = key
            if new_key != key:
                record = record.model_copy(update={"local_path": new_key})
            rebuilt[new_key] = record
        return rebuilt

    async def rename_image_folder(self, new_md_path: str) -> bool:
        """
        Follow a document rename by moving its images to the new asset folder.

        Only files recorded by this manager move. The old folder is deleted
        once nothing is left in it, unless it is the document's own
        directory.

        On failure the document and folder paths are rolled back. Files
        already moved stay at their new location and their records point
        there.

        Args:
            new_md_path: New vault path of the document

        Returns:
            True on success (or when there is nothing to move)
        """
        new_md_path = normalize_path(new_md_path)
        old_md_path = self._md_path
        old_folder = self._image_folder_path
        old_json_path = self.sidecar_path

        self._md_path = new_md_path
        self._image_folder_path = self._resolve_image_folder(new_md_path)
        new_folder = self._image_folder_path

        # Nothing to move, but the paths still follow the document so the
        # manager matches its new registry key.
        if not self.images:
            return True

        moved: dict[str, str] = {}
        try:
            if not await self.vault.exists(old_folder):
                report_warning(f"Asset folder {old_folder} not found, nothing to move")
                return True

            if old_folder == new_folder:
                new_json_path = self.sidecar_path
                if new_json_path != old_json_path and await self.vault.exists(old_json_path):
                    await self.vault.write(new_json_path, await self.vault.read(old_json_path))
                    await self.vault.remove(old_json_path)
                logger.info("Moved sidecar {} -> {}", old_json_path, new_json_path)
                return True

            if not await self.vault.exists(new_folder):
                await self.vault.mkdir(new_folder)

            # Only this document's images move; the folder may be shared
            prefix = f"{old_folder}/" if old_folder else ""
            for file_path in list(self.images):
                if not file_path.startswith(prefix) or not await self.vault.exists(file_path):
                    continue
                relative = posixpath.relpath(file_path, old_folder or ".")
                target_dir = normalize_path(posixpath.join(new_folder, posixpath.dirname(relative)))
                if target_dir and not await self.vault.exists(target_dir):
                    await self.vault.mkdir(target_dir)
                target_path = await available_path(
                    self.vault,
                    target_dir,
                    posixpath.basename(relative),
                    reserved=set(moved.values()),
                )
                await self.vault.write_binary(target_path, await self.vault.read_binary(file_path))
                await self.vault.remove(file_path)
                moved[file_path] = target_path

            self.images = self._rekeyed(moved, old_folder, new_folder)
            if not await self.save_to_json():
                raise OSError(f"Could not write sidecar {self.sidecar_path}")
        except Exception as e:
            report_error(f"Could not move asset folder {old_folder} -> {new_folder}", e)
            if moved:
                self.images = self._rekeyed(moved, old_folder, old_folder)
            self._md_path = old_md_path
            self._image_folder_path = old_folder
            return False

        # The new sidecar is written; leftovers at the old location are only cleanup
        try:
            if old_json_path != self.sidecar_path and await self.vault.exists(old_json_path):
                await self.vault.remove(old_json_path)
            await self._remove_folder_if_unused(old_folder, old_md_path)
        except Exception as e:
            report_warning(f"Could not clean up asset folder {old_folder}: {e}")

        logger.info(
            "[{}] {} -> {} ({} file(s) moved)",
            ImageOperation.UPDATE.value,
            old_folder,
            new_folder,
            len(moved),
        )
        return True

    # --- References ---

    def get_relative_path(self, local_path: str) -> str:
        """Return a vault path relative to the document's directory."""
        return posixpath.relpath(normalize_path(local_path), self._document_dir() or ".")

    def get_markdown_reference(self, local_path: str) -> str:
        """
        Build a markdown image embed for a tracked image.

        Uses the remote URL for uploaded images and the document-relative
        local path otherwise; the label is the file name without extension.

        Returns:
            The embed, or "" if the image is not tracked
        """
        record = self.images.get(local_path)
        if record is None:
            return ""

        name = posixpath.basename(local_path or record.local_path or record.remote_path)
        label = posixpath.splitext(name)[0]

        if record.is_uploaded and record.remote_path:
            return f"![{label}]({record.remote_path})"
        return f"![{label}]({self.get_relative_path(record.local_path or local_path)})"
