"""Tests for CLI commands.

Tests add, remove, list, reference, rename, upload and info commands.
"""

from unittest.mock import patch

import pytest
import respx
from httpx import Response
from rich.console import Console
from typer.testing import CliRunner

from vault_images.cli import app

runner = CliRunner()


@pytest.fixture
def cli_env(test_settings):
    """Run the CLI with test settings and a wide console."""
    with (
        patch("vault_images.cli.settings", test_settings),
        patch("vault_images.cli.console", Console(width=200)),
    ):
        yield


@pytest.fixture
def image_file(temp_dir, sample_image_bytes):
    """Create an image outside the vault."""
    path = temp_dir / "photo.png"
    path.write_bytes(sample_image_bytes)
    return path


class TestHelp:
    """Test help output."""

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("add", "remove", "upload", "download", "rename", "list", "reference", "info"):
            assert command in result.output


class TestInfoCommand:
    """Test info command."""

    def test_info_displays_settings(self, cli_env, vault_root):
        """Test info command displays settings."""
        result = runner.invoke(app, ["--vault", str(vault_root), "info"])

        assert result.exit_code == 0
        assert "Vault Images Configuration" in result.output
        assert "_assets.{{filename}}" in result.output
        assert "NOT SET" in result.output


class TestAddCommand:
    """Test add command."""

    def test_add_local_file(self, cli_env, vault_root, image_file):
        """Test adding a file copies it and prints the embed."""
        result = runner.invoke(app, ["--vault", str(vault_root), "add", "notes/a.md", str(image_file)])

        assert result.exit_code == 0
        assert "![photo](_assets.a/photo.png)" in result.output
        assert (vault_root / "notes/_assets.a/photo.png").exists()
        assert (vault_root / "notes/_assets.a/a.json").exists()
        assert not (vault_root / "temp/photo.png").exists()

    def test_add_with_template_name(self, cli_env, vault_root, image_file):
        """Test --template-name names the image from the file name template."""
        result = runner.invoke(
            app, ["--vault", str(vault_root), "add", "notes/a.md", str(image_file), "--template-name"]
        )

        assert result.exit_code == 0
        added = list((vault_root / "notes/_assets.a").glob("Image*.png"))
        assert len(added) == 1

    def test_add_missing_document(self, cli_env, vault_root, image_file):
        result = runner.invoke(app, ["--vault", str(vault_root), "add", "notes/none.md", str(image_file)])

        assert result.exit_code == 1
        assert "Document not found" in result.output

    def test_add_missing_file(self, cli_env, vault_root, temp_dir):
        result = runner.invoke(
            app, ["--vault", str(vault_root), "add", "notes/a.md", str(temp_dir / "nope.png")]
        )

        assert result.exit_code == 1
        assert "File not found" in result.output

    @respx.mock
    def test_add_unreachable_url(self, cli_env, vault_root):
        """Test a failing download is reported and exits 1."""
        respx.get("https://x.com/broken.png").mock(return_value=Response(500))

        result = runner.invoke(
            app, ["--vault", str(vault_root), "add", "notes/a.md", "https://x.com/broken.png"]
        )

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Error importing" in result.output
        assert not (vault_root / "notes/_assets.a").exists()

    def test_add_rejects_non_image(self, cli_env, vault_root, temp_dir):
        text_file = temp_dir / "notes.txt"
        text_file.write_text("hello")

        result = runner.invoke(app, ["--vault", str(vault_root), "add", "notes/a.md", str(text_file)])

        assert result.exit_code == 1
        assert "Not an image file" in result.output


class TestRecordCommands:
    """Test list, reference and remove on an added image."""

    @pytest.fixture(autouse=True)
    def added(self, cli_env, vault_root, image_file):
        result = runner.invoke(app, ["--vault", str(vault_root), "add", "notes/a.md", str(image_file)])
        assert result.exit_code == 0

    def test_list(self, vault_root):
        result = runner.invoke(app, ["--vault", str(vault_root), "list", "notes/a.md"])

        assert result.exit_code == 0
        assert "notes/_assets.a/photo.png" in result.output
        assert "40x30" in result.output

    def test_reference_document_relative(self, vault_root):
        result = runner.invoke(app, ["--vault", str(vault_root), "reference", "notes/a.md", "_assets.a/photo.png"])

        assert result.exit_code == 0
        assert "![photo](_assets.a/photo.png)" in result.output

    def test_reference_untracked(self, vault_root):
        result = runner.invoke(app, ["--vault", str(vault_root), "reference", "notes/a.md", "other.png"])

        assert result.exit_code == 1
        assert "Image not tracked" in result.output

    def test_remove(self, vault_root):
        result = runner.invoke(
            app, ["--vault", str(vault_root), "remove", "notes/a.md", "notes/_assets.a/photo.png"]
        )

        assert result.exit_code == 0
        assert not (vault_root / "notes/_assets.a/photo.png").exists()

    def test_upload_without_command_fails(self, vault_root):
        """Test upload exits 1 when no upload command is configured."""
        result = runner.invoke(app, ["--vault", str(vault_root), "upload", "notes/a.md"])

        assert result.exit_code == 1
        assert "could not be uploaded" in result.output


class TestRenameCommand:
    """Test rename command."""

    def test_rename_moves_asset_folder(self, cli_env, vault_root, image_file):
        """Test renaming a document moves its images and sidecar."""
        runner.invoke(app, ["--vault", str(vault_root), "add", "notes/a.md", str(image_file)])

        result = runner.invoke(app, ["--vault", str(vault_root), "rename", "notes/a.md", "notes/b.md"])

        assert result.exit_code == 0
        assert (vault_root / "notes/b.md").exists()
        assert (vault_root / "notes/_assets.b/photo.png").exists()
        assert (vault_root / "notes/_assets.b/b.json").exists()
        assert not (vault_root / "notes/_assets.a").exists()

    def test_rename_onto_existing_document(self, cli_env, vault_root):
        (vault_root / "notes/b.md").write_text("# B\n")

        result = runner.invoke(app, ["--vault", str(vault_root), "rename", "notes/a.md", "notes/b.md"])

        assert result.exit_code == 1
        assert "already exists" in result.output
