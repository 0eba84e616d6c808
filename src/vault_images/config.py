"""Configuration management using pydantic-settings.

Loads from environment variables and .env file.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        is_auto_upload: Upload a newly added image right away.
        is_delete_temp: Delete the local copy after a successful upload.
        temp_folder_path: Asset folder template, relative to the document's directory.
        temp_file_format: File name template for staged image data.
        image_file_extension: Comma-separated list of recognised image extensions.
        upload_mode: Upload backend, currently only "custom".
        custom_upload_command: Shell command invoked with the files to upload.
        vault_path: Root directory of the vault on disk.
        vault_name: Workspace name; defaults to the vault directory name.
        staging_folder: Vault folder that receives staged files before import.
        download_timeout: HTTP timeout for image downloads in seconds.
        download_retries: Attempts per image download.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format.
        log_file: Optional log file path.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upload behaviour
    is_auto_upload: bool = True
    is_delete_temp: bool = False
    upload_mode: str = "custom"
    custom_upload_command: str = ""

    # Templates
    temp_folder_path: str = "_assets.{{filename}}"
    temp_file_format: str = "Image{{date}}_{{time}}"
    image_file_extension: str = "jpg, jpeg, png, gif, webp, bmp, svg"

    # Vault
    vault_path: str = "."
    vault_name: str | None = None
    staging_folder: str = "temp"

    # Downloads
    download_timeout: int = 30
    download_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: str | None = None

    @property
    def vault_root(self) -> Path:
        """Return the vault directory as a Path object.

        Returns:
            Path: Path to the vault root.

        """
        return Path(self.vault_path)

    @property
    def image_extensions(self) -> list[str]:
        """Return the configured image extensions, lower-cased and without dots."""
        return [
            ext.strip().lstrip(".").lower()
            for ext in self.image_file_extension.split(",")
            if ext.strip()
        ]

    def is_image_file(self, name: str) -> bool:
        """Check whether a file name carries one of the configured image extensions."""
        if "." not in name:
            return False
        return name.rsplit(".", 1)[1].lower() in self.image_extensions


# Global settings instance
settings = Settings()
