"""LSP channel purchase module for OpenLSP.

Validates channel orders proposed by a Lightning Service Provider, asks the
operator to confirm, and pays the order over Lightning or onchain. Also
reports per-peer forwarding activity of the local node.
"""
