import logging
import os
import sys
import time
from functools import partial
from typing import Mapping, Optional, Sequence

import anyio

from . import NAME, VERSION
from .options import Options, OptionsError, parse_options
from .transport import start_http_transport, start_stdio_transport

logger = logging.getLogger(__name__)

TRANSPORTS = {
    "stdio": start_stdio_transport,
    "http": start_http_transport,
}

USAGE = f"""Usage: {NAME} [options]

Options:
  --server <url>, -s <url>
    SearXNG server URL, e.g. https://searx.example.org
    (or SEARXNG_SERVER env variable, required)
  --key <key>, -k <key>
    API key for the SearXNG server, sent as a bearer token
    (or SEARXNG_API_KEY env variable)
  --language <code>, -l <code>
    Language code for the searches, e.g. en or pt-BR
    (or SEARXNG_LANGUAGE env variable)
  --transport <stdio|http>, -t <stdio|http>
    Transport method for the MCP server (default: stdio)
    (or SEARXNG_TRANSPORT env variable)
  --port <number>, -p <number>
    Port number for HTTP transport (default: 5021)
    (or SEARXNG_PORT env variable)
  --host <address>
    Address to bind for HTTP transport (default: 0.0.0.0)
    (or SEARXNG_HOST env variable)
  --timeout <seconds>
    Timeout for requests to the SearXNG server (default: 10)
    (or SEARXNG_TIMEOUT env variable)
  --version, -v   Show the version and exit
  --help          Show this help message

Logging goes to stderr at SEARXNG_LOG_LEVEL (default: WARNING), and to a
daily file in SEARXNG_LOG_DIR when it is set.
"""


def setup_logging(options: Options) -> str:
    """
    Configure logging on stderr (stdout carries the stdio protocol).
    """
    level = options.log_level
    handlers = [logging.StreamHandler(sys.stderr)]
    logs_dir = options.log_dir
    if logs_dir:
        os.makedirs(logs_dir, exist_ok=True)
        handlers.append(
            logging.FileHandler(os.path.join(logs_dir, f"{time.strftime('%Y-%m-%d')}.log"))
        )

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
    return level


def cli(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Run the server as configured by argv and environ, returning the exit code.
    """
    if environ is None:
        environ = os.environ

    try:
        options = parse_options(argv, environ)
    except OptionsError as e:
        print(str(e), file=sys.stderr)
        print(f"Run '{NAME} --help' for usage.", file=sys.stderr)
        return 1

    if options.help:
        print(USAGE, end="")
        return 0
    if options.version:
        print(f"{NAME} {VERSION}")
        return 0

    log_level = setup_logging(options)

    logger.info(f"Using SearXNG server {options.server} over {options.transport}")
    start = TRANSPORTS[options.transport]
    try:
        anyio.run(partial(start, options, log_level=log_level))
    except KeyboardInterrupt:
        return 130
    return 0
