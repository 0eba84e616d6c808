"""
Document image management package.

Provides image records, per-document managers and the manager registry.
"""

from .base import ImageOperation, ImageRecord, SidecarFile
from .factory import ImageManagerFactory
from .manager import DocumentImageManager

__all__ = [
    "DocumentImageManager",
    "ImageManagerFactory",
    "ImageOperation",
    "ImageRecord",
    "SidecarFile",
]
