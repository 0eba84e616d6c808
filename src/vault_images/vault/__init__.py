"""
Vault filesystem package.

Provides a factory function to create the configured vault.
"""

from pathlib import Path

from .base import FileStat, ListedFiles, Vault, normalize_path
from .local import LocalVault


def create_vault(
    vault_type: str = "local",
    root: str | Path = ".",
    name: str | None = None,
) -> Vault:
    """
    Factory function to create a vault.

    Args:
        vault_type: Type of vault (only "local" for now)
        root: Root directory of the vault
        name: Optional workspace name override

    Returns:
        Configured Vault instance

    Raises:
        ValueError: If vault_type is not recognized
    """
    if vault_type == "local":
        return LocalVault(root=root, name=name)
    raise ValueError(f"Unknown vault type: {vault_type}")


__all__ = [
    "FileStat",
    "ListedFiles",
    "Vault",
    "LocalVault",
    "create_vault",
    "normalize_path",
]
