import logging

from mcp import types
from mcp.server.fastmcp import FastMCP
from mcp.server.lowlevel import Server

from . import VERSION
from .options import Options
from .search import register_search_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "SearXNG MCP Server"
SERVER_DESCRIPTION = (
    "The SearXNG MCP Server provides a tool to search the web using google, bing, brave, etc."
)

MCP_PATH = "/mcp"


def get_lowlevel_server(server: FastMCP) -> Server:
    """
    Return the protocol-level server behind a FastMCP instance.
    """
    return server._mcp_server


def get_server(options: Options, log_level: str = "WARNING") -> FastMCP:
    """
    Build the MCP server for options.

    Only constructs objects: transports are attached by the callers in
    transport.py. The HTTP settings are used only when the server is served
    over HTTP, where every request gets its own stateless transport.
    """
    server = FastMCP(
        SERVER_NAME,
        instructions=SERVER_DESCRIPTION,
        log_level=log_level,
        host=options.host,
        port=options.port_number,
        streamable_http_path=MCP_PATH,
        stateless_http=True,
    )
    mcp_server = get_lowlevel_server(server)
    # report our own release instead of the SDK's
    mcp_server.version = VERSION

    # a setLevel handler is what advertises the logging capability
    @mcp_server.set_logging_level()
    async def set_logging_level(level: types.LoggingLevel) -> None:
        logger.debug(f"Client requested log level {level}")

    register_search_tool(server, options)
    return server
