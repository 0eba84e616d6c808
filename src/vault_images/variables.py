"""
Magic variables for path and file name templates.

Templates reference variables as ``{{name}}``. Known variables are
``filename``, ``title``, ``workspace``, ``date``, ``time`` and ``random``;
callers may merge in their own.
"""

import posixpath
import re
import secrets
import string
from collections.abc import Callable
from datetime import datetime

from loguru import logger
from rich.console import Console
from rich.markup import escape

console = Console()

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")
RANDOM_ALPHABET = string.ascii_lowercase + string.digits
RANDOM_LENGTH = 8


def document_stem(path: str) -> str:
    """Return the base name of a document path without its extension."""
    name = posixpath.basename(path)
    stem, _ = posixpath.splitext(name)
    return stem or name


class MagicVariableProcessor:
    """Resolves magic variables for a document and substitutes them into templates."""

    def __init__(self, workspace: str = "", clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the processor.

        Args:
            workspace: Name of the vault the documents live in
            clock: Source of the current time, for the date and time variables
        """
        self.workspace = workspace
        self.clock = clock

    def resolve_context(self, document_path: str, **extra: str) -> dict[str, str]:
        """
        Build the variable context for a document.

        A fresh ``random`` token is generated on every call. Failures are
        logged and reported; whatever was resolved before the failure is
        returned.

        Args:
            document_path: Vault-relative path of the document
            **extra: Additional variables merged over the built-in ones

        Returns:
            Mapping of variable name to value
        """
        context: dict[str, str] = {}

        try:
            filename = document_stem(document_path)
            context["filename"] = filename
            context["title"] = filename
            context["workspace"] = self.workspace

            now = self.clock()
            context["date"] = now.strftime("%Y-%m-%d")
            context["time"] = now.strftime("%H%M%S")
            context["random"] = "".join(
                secrets.choice(RANDOM_ALPHABET) for _ in range(RANDOM_LENGTH)
            )
        except Exception as e:
            logger.warning("Could not build variable context for {}: {}", document_path, e)
            console.print(f"[yellow]Warning: Could not build variable context: {escape(str(e))}[/]")

        context.update(extra)
        return context

    def substitute(self, template: str, context: dict[str, str]) -> str:
        """
        Replace ``{{name}}`` placeholders with values from the context.

        Unknown names are left as they are.

        Args:
            template: Template text
            context: Variable values

        Returns:
            The template with known variables substituted
        """
        if not template:
            return ""

        def replace(match: re.Match) -> str:
            value = context.get(match.group(1))
            return match.group(0) if value is None else value

        return VARIABLE_PATTERN.sub(replace, template)

    def render(self, template: str, document_path: str, **extra: str) -> str:
        """Resolve the context for a document and substitute it into a template."""
        return self.substitute(template, self.resolve_context(document_path, **extra))
