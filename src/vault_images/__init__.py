"""
Vault Images.

Manages the images embedded in markdown documents: copies them into a
per-document asset folder, records them in a JSON sidecar file, and
uploads or re-downloads them through a configurable upload command.

Usage:
    # Add an image to a document
    vault-images add notes/a.md ~/Pictures/diagram.png

    # Upload everything not uploaded yet
    vault-images upload notes/a.md

    # Show configuration
    vault-images info
"""

__version__ = "0.1.0"

from .images import DocumentImageManager, ImageManagerFactory, ImageRecord
from .variables import MagicVariableProcessor

__all__ = [
    "DocumentImageManager",
    "ImageManagerFactory",
    "ImageRecord",
    "MagicVariableProcessor",
]
