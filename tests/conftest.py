"""Shared fixtures: validated options and a stub SearXNG server."""

import anyio
import httpx
import pytest

from mcp_server_searxng import search
from mcp_server_searxng.options import Options


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def options():
    """Options as the CLI would build them for an HTTP run."""
    return Options(
        server="http://searxng.test",
        language="en",
        transport="http",
        port="5021",
    )


def searxng_payload(query: str) -> dict:
    return {
        "query": query,
        "number_of_results": 1,
        "results": [
            {
                "url": f"https://example.com/{query}",
                "title": f"Result for {query}",
                "content": f"All about <b>{query}</b> &amp; more",
                "engine": "duckduckgo",
                "engines": ["duckduckgo", "brave"],
                "publishedDate": None,
            }
        ],
        "suggestions": [],
    }


async def echo_searxng(request: httpx.Request) -> httpx.Response:
    """Answer like SearXNG with a single result that echoes the query."""
    query = request.url.params["q"]
    # let concurrent searches interleave
    await anyio.sleep(0.05)
    return httpx.Response(200, json=searxng_payload(query))


@pytest.fixture
def stub_searxng(monkeypatch):
    """
    Route the search tool's HTTP client to a handler.

    Returns an install(handler) function and records every request sent.
    """
    requests = []

    def install(handler=echo_searxng):
        async def recording_handler(request):
            requests.append(request)
            response = handler(request)
            if not isinstance(response, httpx.Response):
                response = await response
            return response

        def create_client(options):
            return httpx.AsyncClient(
                base_url=options.server,
                headers=search.merge_headers(options),
                timeout=options.timeout_seconds,
                transport=httpx.MockTransport(recording_handler),
            )

        monkeypatch.setattr(search, "create_client", create_client)
        return requests

    return install
