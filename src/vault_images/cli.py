"""
CLI for vault-images.

Commands:
- add: Copy an image (file or URL) into a document's asset folder
- remove: Delete a tracked image
- upload: Upload a document's images
- download: Re-download uploaded images whose local copy is missing
- rename: Rename a document and move its asset folder
- list: Show a document's image records
- reference: Print the markdown embed for an image
- info: Show configuration
"""

import asyncio
import posixpath
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Settings, settings
from .images import DocumentImageManager, ImageManagerFactory
from .images.fetch import file_name_from_url
from .images.importer import generate_image_file_name, stage_file, stage_url
from .logging import setup_logging
from .uploaders import create_uploader
from .vault import Vault, create_vault, normalize_path

app = typer.Typer(
    name="vault-images",
    help="Manage the images embedded in markdown documents",
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    vault: Path | None = typer.Option(None, "--vault", help="Vault root directory"),
):
    """Vault Images - asset folders, sidecar records and uploads for markdown documents."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json, log_file=settings.log_file)
    ctx.obj = settings.model_copy(update={"vault_path": str(vault)}) if vault else settings
    logger.debug("CLI initialized with log level: {}", log_level)


def _open(cfg: Settings) -> tuple[Vault, ImageManagerFactory]:
    vault = create_vault("local", root=cfg.vault_root, name=cfg.vault_name)
    uploader = create_uploader(cfg.upload_mode, cfg.custom_upload_command)
    return vault, ImageManagerFactory(vault, cfg, uploader)


async def _require_document(vault: Vault, document: str) -> str:
    document = normalize_path(document)
    if not await vault.exists(document):
        logger.error("Document not found: {}", document)
        console.print(f"[red]Error: Document not found: {escape(document)}[/]")
        raise typer.Exit(1)
    return document


def _resolve_image(manager: DocumentImageManager, image: str) -> str | None:
    """Accept an image as a vault path or relative to the document's directory."""
    candidates = [
        normalize_path(image),
        normalize_path(posixpath.join(posixpath.dirname(manager.md_path), image)),
    ]
    for candidate in candidates:
        if candidate in manager.images:
            return candidate
    return None


@app.command()
def add(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Vault path of the document"),
    source: str = typer.Argument(..., help="Image file path or http(s) URL"),
    template_name: bool = typer.Option(
        False,
        "--template-name",
        "-t",
        help="Name the image from the file name template instead of its original name",
    ),
):
    """Add an image to a document and print the embed to insert."""
    cfg: Settings = ctx.obj

    async def run_add():
        vault, factory = _open(cfg)
        md_path = await _require_document(vault, document)
        is_url = source.startswith(("http://", "https://"))

        file_name = None
        if template_name:
            original = file_name_from_url(source) if is_url else Path(source).name
            file_name = generate_image_file_name(
                factory.processor,
                md_path,
                cfg.temp_file_format,
                posixpath.splitext(original)[1],
            )

        path = None
        if not is_url:
            path = Path(source).expanduser()
            if not path.is_file():
                console.print(f"[red]Error: File not found: {escape(source)}[/]")
                raise typer.Exit(1)
            if not cfg.is_image_file(path.name):
                console.print(f"[red]Error: Not an image file: {escape(path.name)}[/]")
                raise typer.Exit(1)

        try:
            if path is None:
                staged = await stage_url(
                    vault,
                    source,
                    cfg.staging_folder,
                    timeout=cfg.download_timeout,
                    retries=cfg.download_retries,
                    file_name=file_name,
                )
            else:
                staged = await stage_file(vault, path, cfg.staging_folder, file_name=file_name)
        except Exception as e:
            logger.error("Error importing {}: {}", source, e)
            console.print(f"[red]Error importing {escape(source)}: {escape(str(e))}[/]")
            raise typer.Exit(1) from None

        manager = await factory.get_manager(md_path)
        try:
            embed_path = await manager.add_image(staged)
        except Exception:
            raise typer.Exit(1) from None
        finally:
            if await vault.exists(staged):
                await vault.remove(staged)

        label = posixpath.splitext(posixpath.basename(embed_path))[0]
        console.print(f"[green]Added image to {escape(md_path)}[/]")
        print(f"![{label}]({embed_path})")

    asyncio.run(run_add())


@app.command()
def remove(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Vault path of the document"),
    image: str = typer.Argument(..., help="Image path (vault or document relative)"),
):
    """Delete a tracked image and its record."""
    cfg: Settings = ctx.obj

    async def run_remove():
        vault, factory = _open(cfg)
        manager = await factory.get_manager(await _require_document(vault, document))
        local_path = _resolve_image(manager, image)
        if local_path is None:
            console.print(f"[yellow]Image not tracked: {escape(image)}[/]")
            raise typer.Exit(1)
        if not await manager.remove_image(local_path):
            raise typer.Exit(1)
        console.print(f"[green]Removed {escape(local_path)}[/]")

    asyncio.run(run_remove())


@app.command()
def upload(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Vault path of the document"),
):
    """Upload every image of a document that is not uploaded yet."""
    cfg: Settings = ctx.obj

    async def run_upload():
        vault, factory = _open(cfg)
        manager = await factory.get_manager(await _require_document(vault, document))
        if not await manager.upload_all_images():
            console.print("[red]Some images could not be uploaded[/]")
            raise typer.Exit(1)
        console.print(f"[green]All images of {escape(manager.md_path)} are uploaded[/]")

    asyncio.run(run_upload())


@app.command()
def download(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Vault path of the document"),
):
    """Download uploaded images whose local copy is missing."""
    cfg: Settings = ctx.obj

    async def run_download():
        vault, factory = _open(cfg)
        manager = await factory.get_manager(await _require_document(vault, document))
        if not await manager.download_all_images():
            console.print("[red]Some images could not be downloaded[/]")
            raise typer.Exit(1)
        console.print(f"[green]All images of {escape(manager.md_path)} are available locally[/]")

    asyncio.run(run_download())


@app.command()
def rename(
    ctx: typer.Context,
    old_path: str = typer.Argument(..., help="Current vault path of the document"),
    new_path: str = typer.Argument(..., help="New vault path of the document"),
):
    """Rename a document and move its asset folder along."""
    cfg: Settings = ctx.obj

    async def run_rename():
        vault, factory = _open(cfg)
        old_md = await _require_document(vault, old_path)
        new_md = normalize_path(new_path)
        if await vault.exists(new_md):
            console.print(f"[red]Error: {escape(new_md)} already exists[/]")
            raise typer.Exit(1)

        await factory.get_manager(old_md)
        await vault.rename(old_md, new_md)
        if not await factory.rename_manager(old_md, new_md):
            console.print("[red]Document renamed, but its images could not be moved[/]")
            raise typer.Exit(1)
        console.print(f"[green]Renamed {escape(old_md)} -> {escape(new_md)}[/]")

    asyncio.run(run_rename())


@app.command(name="list")
def list_images(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Vault path of the document"),
):
    """Show the image records of a document."""
    cfg: Settings = ctx.obj

    async def run_list():
        vault, factory = _open(cfg)
        manager = await factory.get_manager(await _require_document(vault, document))
        if not manager.images:
            console.print("[yellow]No images tracked for this document[/]")
            return

        table = Table(title=f"Images of {manager.md_path}")
        table.add_column("Local Path", style="cyan")
        table.add_column("Uploaded", style="green")
        table.add_column("Remote Path")
        table.add_column("Size", justify="right")
        table.add_column("Dimensions", justify="right")
        for local_path, record in sorted(manager.images.items()):
            dimensions = f"{record.width}x{record.height}" if record.width and record.height else ""
            table.add_row(
                escape(local_path) + (" [dim](deleted)[/]" if record.local_deleted else ""),
                "yes" if record.is_uploaded else "no",
                escape(record.remote_path),
                str(record.size) if record.size is not None else "",
                dimensions,
            )
        console.print(table)

    asyncio.run(run_list())


@app.command()
def reference(
    ctx: typer.Context,
    document: str = typer.Argument(..., help="Vault path of the document"),
    image: str = typer.Argument(..., help="Image path (vault or document relative)"),
):
    """Print the markdown embed for a tracked image."""
    cfg: Settings = ctx.obj

    async def run_reference():
        vault, factory = _open(cfg)
        manager = await factory.get_manager(await _require_document(vault, document))
        local_path = _resolve_image(manager, image)
        if local_path is None:
            console.print(f"[yellow]Image not tracked: {escape(image)}[/]")
            raise typer.Exit(1)
        print(manager.get_markdown_reference(local_path))

    asyncio.run(run_reference())


@app.command()
def info(ctx: typer.Context):
    """Show configuration."""
    cfg: Settings = ctx.obj
    logger.debug("Displaying configuration")
    console.print("[bold blue]Vault Images Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Vault Path", cfg.vault_path)
    table.add_row("Vault Name", cfg.vault_name or cfg.vault_root.resolve().name)
    table.add_row("Asset Folder Template", escape(cfg.temp_folder_path))
    table.add_row("File Name Template", escape(cfg.temp_file_format))
    table.add_row("Image Extensions", ", ".join(cfg.image_extensions))
    table.add_row("Auto Upload", str(cfg.is_auto_upload))
    table.add_row("Delete After Upload", str(cfg.is_delete_temp))
    table.add_row("Upload Mode", cfg.upload_mode)
    table.add_row(
        "Upload Command",
        escape(cfg.custom_upload_command) if cfg.custom_upload_command else "[red]NOT SET[/]",
    )

    console.print(table)


if __name__ == "__main__":
    app()
