"""MCP server exposing Linux ISO Creator tools.

This module implements the Model Context Protocol (MCP) server that
exposes the core iso_creator functionality to AI tools and external
systems.

MCP tools:
- Return structured errors with codes
- Map directly to core services
"""

from mcp_server.server import mcp

__all__ = ["mcp"]
