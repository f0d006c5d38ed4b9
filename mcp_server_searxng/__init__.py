import sys
from importlib.metadata import PackageNotFoundError, version

# mcp_server_searxng
NAME = "mcp-server-searxng"

try:
    VERSION = version(NAME)
except PackageNotFoundError:
    # running from a source checkout
    VERSION = "0.0.0"


def main():
    """
    Initialize and run the MCP server.
    """
    from dotenv import load_dotenv

    from .cli import cli

    load_dotenv()
    sys.exit(cli())


__all__ = ["main", "NAME", "VERSION"]
