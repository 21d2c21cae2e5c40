#!/usr/bin/env python3
"""MCP server exposing NVD Matcher capabilities.

New tools are added by creating a module in tools/ with a
register_tools(mcp) function and registering it below.
"""

import logging
import sys
from pathlib import Path

# Add parent src/ to path for nvd_matcher imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mcp.server.fastmcp import FastMCP

# Never print: stdout carries the STDIO transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("nvd-mcp")

mcp = FastMCP("nvd-matcher")

from tools import matcher_tools

matcher_tools.register_tools(mcp)


def main():
    """Run the MCP server with stdio transport."""
    logger.info("Starting NVD Matcher MCP server")
    mcp.run()


if __name__ == "__main__":
    main()
