"""
Abstract base class for upload backends.

An uploader takes a comma-joined list of files and returns a comma-joined
list of URLs in the same order.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from pydantic import BaseModel


class UploadError(RuntimeError):
    """Raised when an upload cannot be started, fails or returns unusable output."""


class UploadCallbacks(BaseModel):
    """Optional hooks invoked while an upload runs."""

    on_start: Callable[[], None] | None = None
    on_progress: Callable[[str], None] | None = None
    on_error: Callable[[str], None] | None = None
    on_success: Callable[[str], None] | None = None

    def start(self) -> None:
        if self.on_start:
            self.on_start()

    def progress(self, message: str) -> None:
        if self.on_progress:
            self.on_progress(message)

    def error(self, message: str) -> None:
        if self.on_error:
            self.on_error(message)

    def success(self, result: str) -> None:
        if self.on_success:
            self.on_success(result)


class Uploader(ABC):
    """Abstract interface for upload backends."""

    @abstractmethod
    async def upload(self, files: str, callbacks: UploadCallbacks | None = None) -> str:
        """
        Upload one or more files.

        Args:
            files: Comma-joined absolute file paths
            callbacks: Optional progress hooks

        Returns:
            Comma-joined URLs, one per input file, in input order

        Raises:
            UploadError: If the upload fails
        """
        pass
