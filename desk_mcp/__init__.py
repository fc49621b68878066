"""
MCP server exposing the desk as LLM-callable tools.

Each tool connects with DeskSettings from the environment, acts, and
disconnects again.
"""

from desk_mcp.server import mcp, run_server

__all__ = ["mcp", "run_server"]
