"""OpenLSP - buy inbound Lightning liquidity from a Lightning Service Provider."""

__version__ = "0.1.0"
__author__ = "OpenLSP Contributors"
