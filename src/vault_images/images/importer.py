"""
Staging of images that come from outside the vault.

Pasted data, files from elsewhere on disk and image URLs are first written
to the vault's staging folder; ``DocumentImageManager.add_image`` then
copies them into the document's asset folder.
"""

import posixpath
from pathlib import Path

from loguru import logger

from ..variables import MagicVariableProcessor
from ..vault.base import Vault, normalize_path
from .fetch import fetch_image, file_name_from_url
from .manager import available_path


def generate_image_file_name(
    processor: MagicVariableProcessor,
    md_path: str,
    template: str,
    extension: str = "png",
) -> str:
    """
    Build a file name for image data from the file name template.

    Args:
        processor: Magic variable processor
        md_path: Document the image is for
        template: File name template without extension
        extension: File extension, with or without a leading dot

    Returns:
        File name such as ``Image2024-05-01_101500.png``
    """
    base_name = processor.render(template, md_path) or "image"
    return f"{base_name}.{extension.lstrip('.') or 'png'}"


async def stage_bytes(vault: Vault, data: bytes, file_name: str, staging_folder: str = "temp") -> str:
    """
    Write image data to the staging folder.

    Returns:
        Vault path of the staged file
    """
    staging_folder = normalize_path(staging_folder)
    if not await vault.exists(staging_folder):
        await vault.mkdir(staging_folder)
    target_path = await available_path(vault, staging_folder, posixpath.basename(file_name))
    await vault.write_binary(target_path, data)
    logger.debug("Staged {} bytes at {}", len(data), target_path)
    return target_path


async def stage_file(
    vault: Vault,
    source: Path | str,
    staging_folder: str = "temp",
    file_name: str | None = None,
) -> str:
    """Copy a file from the local disk into the staging folder, optionally under a new name."""
    source = Path(source)
    return await stage_bytes(vault, source.read_bytes(), file_name or source.name, staging_folder)


async def stage_url(
    vault: Vault,
    url: str,
    staging_folder: str = "temp",
    timeout: int = 30,
    retries: int = 3,
    file_name: str | None = None,
) -> str:
    """Download an image URL into the staging folder, optionally under a new name."""
    content, content_type = await fetch_image(url, timeout=timeout, retries=retries)
    file_name = file_name or file_name_from_url(url, content_type)
    return await stage_bytes(vault, content, file_name, staging_folder)
