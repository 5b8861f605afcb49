"""
Web search: DuckDuckGo backend and El Niño query widening.

Responsibility: Turn the assistant's search request into up to four backend
queries, from most to least constrained, and return the first non-empty
result list. The backend matches keywords literally, so constraints that are
too strict for the indexed content are dropped one step at a time.
"""

import asyncio
import logging

from ddgs import DDGS
from ddgs.exceptions import DDGSException, RatelimitException, TimeoutException

from elnino_chat.core.config import (
    SEARCH_DEFAULT_COUNT,
    SEARCH_DEFAULT_OFFSET,
    SEARCH_KEYWORDS,
    SEARCH_SITES,
)
from elnino_chat.core.logging_setup import trace

logger = logging.getLogger(__name__)


def keyword_clause(keywords: tuple[str, ...] = SEARCH_KEYWORDS) -> str:
    return "(" + " OR ".join(f'"{k}"' for k in keywords) + ")"


def site_clause(sites: tuple[str, ...] = SEARCH_SITES) -> str:
    return "(" + " OR ".join(f"site:{s}" for s in sites) + ")"


def build_query_variants(query: str) -> list[str]:
    """
    Return the four search queries for query, most constrained first:
    keywords + sites, keywords only, sites only, bare query.
    """
    keywords = keyword_clause()
    sites = site_clause()
    return [
        f"{query} {keywords} {sites}",
        f"{query} {keywords}",
        f"{query} {sites}",
        query,
    ]


class DuckDuckGoSearchBackend:
    """Search backend over ddgs text search. Results are "title\\nbody\\nURL: href" snippets."""

    def __init__(self, safesearch: str = "moderate") -> None:
        self.safesearch = safesearch

    def _search_sync(self, query: str, count: int, offset: int) -> list[str]:
        logger.info("[search:ddgs] IN  query=%r count=%d offset=%d", query, count, offset)
        try:
            with DDGS() as ddgs:
                results = list(
                    ddgs.text(
                        query,
                        safesearch=self.safesearch,
                        max_results=offset + count,
                    )
                    or []
                )
        except (RatelimitException, TimeoutException):
            raise
        except DDGSException as e:
            # ddgs signals an empty result set with an exception.
            if "no results" not in str(e).lower():
                raise
            results = []
        snippets = []
        for r in results[offset:offset + count]:
            title = (r.get("title") or "").strip()
            body = (r.get("body") or "").strip()
            href = (r.get("href") or "").strip()
            snippets.append(f"{title}\n{body}\nURL: {href}")
        logger.info("[search:ddgs] OUT results=%d", len(snippets))
        return snippets

    async def search(self, query: str, count: int = SEARCH_DEFAULT_COUNT, offset: int = SEARCH_DEFAULT_OFFSET) -> list[str]:
        return await asyncio.to_thread(self._search_sync, query, count, offset)


class QueryWidener:
    """Wraps a search backend; retries with broader queries while results are empty."""

    def __init__(self, backend) -> None:
        self.backend = backend

    async def search(
        self,
        query: str,
        count: int = SEARCH_DEFAULT_COUNT,
        offset: int = SEARCH_DEFAULT_OFFSET,
    ) -> list[str]:
        results: list[str] = []
        for variant in build_query_variants(query):
            logger.debug("[search:widen] Querying with %r", variant)
            results = list(await self.backend.search(variant, count, offset))
            if results:
                break
            logger.warning("[search:widen] No results returned for %r.", variant)
        trace(logger, "[search:widen] %d results returned.", len(results))
        return results
