"""
Image fetching over HTTP.

Used when re-downloading uploaded images and when importing an image URL.
"""

import asyncio
import posixpath
import re
from urllib.parse import unquote, urlparse

import httpx
from loguru import logger

IMAGE_NAME_PATTERN = re.compile(r"\.(jpe?g|png|gif|bmp|webp|svg)$", re.IGNORECASE)
UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_\-.]")

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
    "image/x-icon": "ico",
}


async def fetch_image(url: str, timeout: int = 30, retries: int = 3) -> tuple[bytes, str]:
    """
    Fetch an image with retries and exponential backoff.

    Args:
        url: Image URL
        timeout: HTTP timeout in seconds
        retries: Number of attempts

    Returns:
        Tuple of (content, content_type)

    Raises:
        httpx.HTTPError: If the last attempt fails
    """
    attempts = max(1, retries)
    for attempt in range(attempts):
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                content_type = response.headers.get("content-type", "")
                logger.debug("Fetched {}: {} bytes, type={}", url[:80], len(response.content), content_type)
                return response.content, content_type
        except httpx.HTTPError as e:
            if attempt == attempts - 1:
                logger.warning("Failed to fetch {} after {} attempts: {}", url[:80], attempts, e)
                raise
            logger.debug("Fetch attempt {} failed, retrying: {}", attempt + 1, e)
            await asyncio.sleep(2**attempt)


def extension_for(content_type: str) -> str:
    """Map a content type to a file extension, defaulting to png."""
    mime = content_type.split(";", 1)[0].strip().lower()
    if mime in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[mime]
    if mime.startswith("image/") and mime[6:].isalnum():
        return mime[6:]
    return "png"


def file_name_from_url(url: str, content_type: str = "") -> str:
    """
    Derive a safe local file name for a downloaded image.

    The last path segment of the URL (query dropped) has unsafe characters
    replaced by ``_``; an extension from the content type is appended when
    the name does not end in a known image extension.
    """
    name = posixpath.basename(unquote(urlparse(url).path))
    name = UNSAFE_CHARS.sub("_", name).strip(".") or "image"
    if not IMAGE_NAME_PATTERN.search(name):
        name = f"{name}.{extension_for(content_type)}"
    return name
