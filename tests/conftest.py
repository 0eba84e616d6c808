"""Pytest fixtures and configuration for vault-images tests.

This module provides shared fixtures for testing the vault, the magic variable
processor, document image managers and the manager registry.
"""

import tempfile
from collections.abc import Generator
from datetime import datetime
from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import respx
from PIL import Image

from vault_images.config import Settings
from vault_images.images.factory import ImageManagerFactory
from vault_images.images.manager import DocumentImageManager
from vault_images.uploaders.base import Uploader
from vault_images.variables import MagicVariableProcessor
from vault_images.vault.local import LocalVault

FIXED_NOW = datetime(2024, 5, 1, 10, 15, 30)


# --- HTTP Mock Isolation ---


@pytest.fixture(autouse=True)
def _reset_respx_global_router() -> Generator[None, None, None]:
    """Keep routes added to respx's global router from leaking between tests."""
    respx.mock.clear()
    yield
    respx.mock.clear()


# --- Temporary Directory Fixtures ---


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def vault_root(temp_dir: Path) -> Path:
    """Create a vault directory containing one document, notes/a.md."""
    root = temp_dir / "vault"
    (root / "notes").mkdir(parents=True)
    (root / "notes" / "a.md").write_text("# A\n")
    return root


@pytest.fixture
def vault(vault_root: Path) -> LocalVault:
    """Create a LocalVault on the temporary vault directory."""
    return LocalVault(vault_root, name="MyVault")


# --- Sample Data Fixtures ---


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create a 40x30 PNG image."""
    img = Image.new("RGB", (40, 30), color="red")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def staged_image(vault_root: Path, sample_image_bytes: bytes) -> str:
    """Put an image at temp/img.png inside the vault and return its vault path."""
    (vault_root / "temp").mkdir(exist_ok=True)
    (vault_root / "temp" / "img.png").write_bytes(sample_image_bytes)
    return "temp/img.png"


# --- Settings Fixtures ---


@pytest.fixture
def test_settings(vault_root: Path) -> Settings:
    """Settings with auto-upload off and no download retries."""
    return Settings(
        vault_path=str(vault_root),
        is_auto_upload=False,
        is_delete_temp=False,
        temp_folder_path="_assets.{{filename}}",
        download_retries=1,
        download_timeout=5,
    )


@pytest.fixture
def processor() -> MagicVariableProcessor:
    """Magic variable processor with a fixed clock."""
    return MagicVariableProcessor(workspace="MyVault", clock=lambda: FIXED_NOW)


# --- Mock Uploader Fixtures ---


@pytest.fixture
def mock_uploader() -> Uploader:
    """Create a mock uploader that returns one URL per file."""
    uploader = MagicMock(spec=Uploader)

    async def mock_upload(files: str, callbacks=None) -> str:
        """Return a CDN URL for each file."""
        return ",".join(
            f"https://cdn.example.com/{Path(f).name}" for f in files.split(",")
        )

    uploader.upload = AsyncMock(side_effect=mock_upload)
    return uploader


@pytest.fixture
def manager(vault, test_settings, mock_uploader, processor) -> DocumentImageManager:
    """Create a manager for notes/a.md."""
    return DocumentImageManager(
        vault,
        test_settings,
        mock_uploader,
        "notes/a.md",
        processor=processor,
    )


@pytest.fixture
def factory(vault, test_settings, mock_uploader, processor) -> ImageManagerFactory:
    """Create an isolated manager registry."""
    return ImageManagerFactory(vault, test_settings, mock_uploader, processor=processor)
