import json
import logging
from typing import Annotated, Literal, Optional

import httpx
from bs4 import BeautifulSoup
from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import TextContent
from pydantic import BaseModel, Field, ValidationError

from . import NAME, VERSION
from .options import Options

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": f"{NAME}/{VERSION}",
    "Accept": "application/json",
}

SEARCH_DESCRIPTION = """
Search the web through a SearXNG instance, which aggregates results from
engines such as Google, Bing, Brave and DuckDuckGo.
    Args:
        query (str): search query
        page (int): result page, starting at 1
        time_range (str): only return results from the last day, week, month or year
        categories (str): comma separated SearXNG categories, e.g. "general,news"
        safesearch (int): 0 (off), 1 (moderate) or 2 (strict)
    Returns:
        Text content with a JSON list of results (title, url, content).
""".strip()

NO_RESULTS = "No results found"


class SearxngResult(BaseModel):
    url: str
    title: Optional[str] = ""
    content: Optional[str] = ""
    engine: Optional[str] = None
    engines: list[str] = []
    publishedDate: Optional[str] = None


class SearxngResponse(BaseModel):
    query: str = ""
    results: list[SearxngResult] = []


def merge_headers(options: Options) -> dict:
    """
    Merge the API key, if any, with the default headers.
    """
    if options.key:
        return {**HEADERS, "Authorization": f"Bearer {options.key}"}
    return dict(HEADERS)


def create_client(options: Options) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=options.server,
        headers=merge_headers(options),
        timeout=options.timeout_seconds,
    )


def build_params(
    options: Options,
    query: str,
    page: int = 1,
    time_range: Optional[str] = None,
    categories: Optional[str] = None,
    safesearch: Optional[int] = None,
) -> dict:
    params = {"q": query, "format": "json", "pageno": page}
    if options.language:
        params["language"] = options.language
    if time_range:
        params["time_range"] = time_range
    if categories:
        params["categories"] = categories
    if safesearch is not None:
        params["safesearch"] = safesearch
    return params


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    return " ".join(BeautifulSoup(text, "html.parser").get_text(" ").split())


def normalize_results(payload: SearxngResponse) -> list[dict]:
    results = []
    for result in payload.results:
        item = {
            "title": strip_html(result.title),
            "url": result.url,
            "content": strip_html(result.content),
        }
        engines = result.engines or ([result.engine] if result.engine else [])
        if engines:
            item["engines"] = engines
        if result.publishedDate:
            item["published_date"] = result.publishedDate
        results.append(item)
    return results


async def search_searxng(
    options: Options,
    query: str,
    page: int = 1,
    time_range: Optional[str] = None,
    categories: Optional[str] = None,
    safesearch: Optional[int] = None,
) -> list[dict]:
    """
    Run one search against the configured SearXNG server.

    Everything about the call lives in this frame, so concurrent searches
    never see each other's queries.
    """
    if not query or not isinstance(query, str):
        raise ToolError("Query parameter is required and must be a string")

    params = build_params(options, query, page, time_range, categories, safesearch)

    try:
        async with create_client(options) as client:
            response = await client.get("/search", params=params)
            response.raise_for_status()
            data = response.json()
        payload = SearxngResponse.model_validate(data)
    except httpx.TimeoutException:
        logger.error(f"Timeout searching {options.server} for {query!r}")
        raise ToolError(f"SearXNG did not answer within {options.timeout} seconds")
    except httpx.HTTPStatusError as e:
        logger.error(f"SearXNG returned HTTP {e.response.status_code} for {query!r}")
        raise ToolError(
            f"SearXNG returned HTTP {e.response.status_code}: {e.response.text[:200]}"
        )
    except httpx.HTTPError as e:
        logger.error(f"HTTP Error searching {options.server}: {str(e)}")
        raise ToolError(f"Could not reach SearXNG at {options.server}: {str(e)}")
    except json.JSONDecodeError as e:
        logger.error(f"JSON decode error in search response: {str(e)}")
        raise ToolError(
            "SearXNG did not return JSON, check that the json format is enabled on the server"
        )
    except ValidationError as e:
        logger.error(f"Unexpected search response shape: {str(e)}")
        raise ToolError("SearXNG returned an unexpected response")

    results = normalize_results(payload)
    logger.debug(f"Search for {query!r} returned {len(results)} results")
    return results


def format_results(results: list[dict]) -> TextContent:
    if not results:
        return TextContent(type="text", text=NO_RESULTS)
    return TextContent(
        type="text", text=json.dumps(results, ensure_ascii=False, indent=2)
    )


def register_search_tool(server: FastMCP, options: Options) -> None:
    """
    Register the search tool on server, bound to options.
    """

    @server.tool(
        name="search",
        title="Web Search",
        description=SEARCH_DESCRIPTION,
        structured_output=False,
    )
    async def search(
        query: Annotated[str, Field(description="Search query", min_length=1)],
        ctx: Context,
        page: Annotated[int, Field(description="Result page, starting at 1", ge=1)] = 1,
        time_range: Annotated[
            Optional[Literal["day", "week", "month", "year"]],
            Field(description="Only return results from the last day, week, month or year"),
        ] = None,
        categories: Annotated[
            Optional[str],
            Field(description="Comma separated SearXNG categories, e.g. general,news"),
        ] = None,
        safesearch: Annotated[
            Optional[int],
            Field(description="0 (off), 1 (moderate) or 2 (strict)", ge=0, le=2),
        ] = None,
    ) -> TextContent:
        await ctx.info(f"Searching SearXNG for {query!r} (page {page})")
        results = await search_searxng(
            options,
            query,
            page=page,
            time_range=time_range,
            categories=categories,
            safesearch=safesearch,
        )
        return format_results(results)
