"""github-repo-mcp: read-only GitHub repository tools over MCP."""

__version__ = "0.1.0"
