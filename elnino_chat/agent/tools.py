"""
Agent tools: definitions and execution for tool-calling mode.

Tools: web_search (El Niño-scoped, widened when empty), get_url_content
(5 s timeout), get_current_date_time (RFC 1123).
"""

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any

import httpx
from pydantic import ValidationError

from elnino_chat.core.config import FETCH_TIMEOUT
from elnino_chat.core.errors import FetchNotFoundError
from elnino_chat.core.logging_setup import trace
from elnino_chat.schemas.tools import GetUrlContentArgs, NoArgs, WebSearchArgs
from elnino_chat.services.search_service import QueryWidener

logger = logging.getLogger(__name__)

# OpenAI function-calling format: list of tool definitions
AGENT_TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "web_search",
            "description": "Search the web for current information about El Niño and La Niña. Results favour wmo.int and noaa.gov. Returns text snippets with their URLs.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search query (keywords). URL-encode non-alphanumeric characters.",
                    },
                    "count": {
                        "type": "integer",
                        "description": "Number of results to return. Default is 1.",
                    },
                    "offset": {
                        "type": "integer",
                        "description": "Number of results to skip, for paging. Default is 0.",
                    },
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_url_content",
            "description": "Gets the content of a URL. Use after web_search to read a result page in full.",
            "parameters": {
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "Absolute URL of the page to download.",
                    }
                },
                "required": ["url"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_current_date_time",
            "description": "Gets the current Date & Time in RFC 1123 format. Use for questions about the current or upcoming season.",
            "parameters": {"type": "object", "properties": {}},
        },
    },
]


def current_date_time(now: datetime | None = None) -> str:
    """Current UTC time in RFC 1123 format, e.g. 'Fri, 16 Oct 2026 09:30:00 GMT'."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    out = format_datetime(moment, usegmt=True)
    trace(logger, "[tools:current_date_time] %s", out)
    return out


async def get_url_content(url: str, client: httpx.AsyncClient | None = None) -> str:
    """
    Download url and return its body as text. Raises FetchNotFoundError on 404,
    httpx.HTTPStatusError on other error statuses, httpx.TimeoutException after FETCH_TIMEOUT.
    """
    logger.info("[tools:get_url_content] IN  url=%r", url)
    if client is None:
        async with httpx.AsyncClient(timeout=FETCH_TIMEOUT, follow_redirects=True) as own_client:
            response = await own_client.get(url)
    else:
        response = await client.get(url, timeout=FETCH_TIMEOUT)
    if response.status_code == 404:
        raise FetchNotFoundError(url)
    response.raise_for_status()
    text = response.text
    logger.info("[tools:get_url_content] OUT status=%d len=%d", response.status_code, len(text))
    return text


def _format_results(results: list[str]) -> str:
    if not results:
        return "No results found."
    return "\n\n".join(f"{i}. {r}" for i, r in enumerate(results, 1))


async def execute_tool(
    name: str,
    arguments: dict[str, Any],
    *,
    widener: QueryWidener,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """
    Execute a tool by name with the given arguments. Returns a string result for the LLM;
    tool failures are returned as "Error: ..." so the assistant can relay or work around them.
    """
    args = arguments or {}
    logger.info("[tools] execute_tool name=%r arguments=%r", name, args)

    try:
        if name == "web_search":
            parsed = WebSearchArgs.model_validate(args)
            results = await widener.search(parsed.query, parsed.count, parsed.offset)
            out = _format_results(results)
        elif name == "get_url_content":
            parsed = GetUrlContentArgs.model_validate(args)
            out = await get_url_content(parsed.url, client=http_client)
        elif name == "get_current_date_time":
            NoArgs.model_validate(args)
            out = current_date_time()
        else:
            return f"Unknown tool: {name}"
    except ValidationError as e:
        logger.warning("[tools] invalid arguments for %s: %s", name, e)
        return f"Error: invalid arguments for {name}: {e}"
    except httpx.TimeoutException:
        logger.warning("[tools] %s timed out", name)
        return f"Error: {name} timed out after {FETCH_TIMEOUT:g} seconds."
    except Exception as e:
        logger.warning("[tools] %s failed: %s", name, e)
        return f"Error: {e}"

    trace(logger, "[tools] %s result=%r", name, out[:500])
    return out
