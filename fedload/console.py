"""Shared Rich console instance for CLI output."""

from rich.console import Console
from rich.markup import escape

console = Console()


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings.

    Paths and error messages may contain brackets (identities are printed as
    ``Name [uuid]``) that Rich would otherwise read as markup tags.
    """
    return escape(str(value))


__all__ = ["console", "escape_markup"]
