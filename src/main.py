"""Main entry point for the Pulsar MCP server."""

from pulsar.mcp_server import main, mcp

# Expose mcp object for MCP inspector
__all__ = ["mcp", "main"]

if __name__ == "__main__":
    main()
