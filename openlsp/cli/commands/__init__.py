"""CLI command groups."""

from . import lsp

__all__ = ["lsp"]
