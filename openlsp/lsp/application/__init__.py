"""Application layer for LSP channel purchases."""
