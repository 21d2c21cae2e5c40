"""Tool modules for the NVD Matcher MCP server.

Each module exposes a register_tools(mcp) function that registers its tools
with the FastMCP server instance.
"""
