"""Puffer Finance bridge routing and strategy tools served over MCP."""

__version__ = "0.1.0"
