"""Upload backends package.

Provides a factory function to create the configured uploader.
"""

from .base import UploadCallbacks, UploadError, Uploader
from .custom import CustomUploader, parse_upload_output


def create_uploader(mode: str = "custom", command: str = "") -> Uploader:
    """Create an uploader instance.

    Args:
        mode: Upload backend ("custom" runs a shell command)
        command: Command line for the custom backend

    Returns:
        Configured Uploader instance

    Raises:
        ValueError: If mode is not recognized

    """
    if mode == "custom":
        return CustomUploader(command=command)
    raise ValueError(f"Unsupported upload mode: {mode}")


__all__ = [
    "CustomUploader",
    "UploadCallbacks",
    "UploadError",
    "Uploader",
    "create_uploader",
    "parse_upload_output",
]
