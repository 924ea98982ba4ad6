"""DevOps Test MCP - Model Context Protocol tools for the DevOps Test server."""

__version__ = "1.0.0"
