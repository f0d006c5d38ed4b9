"""
Attach the MCP server to a transport.

stdio: the process's stdin/stdout carry exactly one session.
http: a uvicorn listener serves the /mcp route, and every request gets a
fresh stateless streamable HTTP transport connected to the same server.

Status lines go to stderr, stdout belongs to the protocol.
"""

import logging
import sys

import uvicorn
from mcp.server.stdio import stdio_server

from .options import Options
from .server import get_lowlevel_server, get_server

logger = logging.getLogger(__name__)


def _status(message: str) -> None:
    sys.stderr.write(message + "\n")
    sys.stderr.flush()


async def start_stdio_transport(options: Options, log_level: str = "WARNING") -> None:
    server = get_server(options, log_level=log_level)
    mcp_server = get_lowlevel_server(server)
    async with stdio_server() as (read_stream, write_stream):
        _status("MCP Server is running over stdio")
        await mcp_server.run(
            read_stream,
            write_stream,
            mcp_server.create_initialization_options(),
        )
    logger.info("stdio session closed")


async def start_http_transport(options: Options, log_level: str = "WARNING") -> None:
    server = get_server(options, log_level=log_level)
    app = server.streamable_http_app()

    config = uvicorn.Config(
        app, host=options.host, port=options.port_number, log_level=log_level.lower()
    )
    # exits the process if the address is taken
    sock = config.bind_socket()
    port = sock.getsockname()[1]
    http_server = uvicorn.Server(config)

    _status(f"MCP Server is running over HTTP on port {port}")
    logger.info(
        f"Serving MCP at http://{options.host}:{port}{server.settings.streamable_http_path}"
    )
    try:
        await http_server.serve(sockets=[sock])
    finally:
        sock.close()
