"""Command-line interface for OpenLSP."""
