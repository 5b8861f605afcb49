"""
Tests for query widening and the ddgs search backend.

Uses a fake backend so no network access is needed.
"""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from ddgs.exceptions import DDGSException, RatelimitException, TimeoutException

from elnino_chat.services.search_service import (
    DuckDuckGoSearchBackend,
    QueryWidener,
    build_query_variants,
)

KEYWORDS = '("El Niño" OR "El Nino" OR "La Niña" OR "La Nina")'
SITES = "(site:wmo.int OR site:noaa.gov)"


class FakeBackend:
    """Returns the scripted result lists in call order and records each call."""

    def __init__(self, *results: list[str]) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, int, int]] = []

    async def search(self, query: str, count: int, offset: int) -> list[str]:
        self.calls.append((query, count, offset))
        return self.results[len(self.calls) - 1]


def test_build_query_variants_order() -> None:
    assert build_query_variants("current status") == [
        f"current status {KEYWORDS} {SITES}",
        f"current status {KEYWORDS}",
        f"current status {SITES}",
        "current status",
    ]


def test_first_variant_hit_stops_immediately() -> None:
    backend = FakeBackend(["snippet"])
    results = asyncio.run(QueryWidener(backend).search("forecast"))
    assert results == ["snippet"]
    assert backend.calls == [(f"forecast {KEYWORDS} {SITES}", 1, 0)]


def test_bare_query_used_when_scoped_variants_empty() -> None:
    backend = FakeBackend([], [], [], ["a", "b"])
    results = asyncio.run(QueryWidener(backend).search("current status", count=2))
    assert results == ["a", "b"]
    assert [q for q, _, _ in backend.calls] == build_query_variants("current status")
    assert all(c == 2 and o == 0 for _, c, o in backend.calls)


def test_second_variant_result_not_merged() -> None:
    backend = FakeBackend([], ["from keywords"], ["from sites"], ["bare"])
    results = asyncio.run(QueryWidener(backend).search("q"))
    assert results == ["from keywords"]
    assert len(backend.calls) == 2


def test_all_variants_empty_returns_empty() -> None:
    backend = FakeBackend([], [], [], [])
    results = asyncio.run(QueryWidener(backend).search("nothing here", count=3, offset=5))
    assert results == []
    assert len(backend.calls) == 4
    assert all(c == 3 and o == 5 for _, c, o in backend.calls)


def test_same_query_takes_same_path() -> None:
    first = FakeBackend([], [], ["x"])
    second = FakeBackend([], [], ["x"])
    asyncio.run(QueryWidener(first).search("q"))
    asyncio.run(QueryWidener(second).search("q"))
    assert first.calls == second.calls


def test_empty_variants_logged_as_warnings(caplog) -> None:
    backend = FakeBackend([], ["hit"])
    with caplog.at_level("DEBUG", logger="elnino_chat.services.search_service"):
        asyncio.run(QueryWidener(backend).search("q"))
    warnings = [r for r in caplog.records if r.levelname == "WARNING"]
    debugs = [r for r in caplog.records if r.levelname == "DEBUG"]
    assert len(warnings) == 1
    assert len(debugs) == 2


class TestDuckDuckGoSearchBackend:
    """Tests for DuckDuckGoSearchBackend with DDGS patched out."""

    def _patched_ddgs(self, rows: list[dict]) -> MagicMock:
        ddgs_cls = MagicMock()
        ddgs_cls.return_value.__enter__.return_value.text.return_value = rows
        return ddgs_cls

    def test_formats_snippets(self) -> None:
        rows = [{"title": " ENSO update ", "body": "La Niña watch.", "href": "https://www.noaa.gov/enso"}]
        ddgs_cls = self._patched_ddgs(rows)
        with patch("elnino_chat.services.search_service.DDGS", ddgs_cls):
            results = asyncio.run(DuckDuckGoSearchBackend().search("enso", 1, 0))
        assert results == ["ENSO update\nLa Niña watch.\nURL: https://www.noaa.gov/enso"]

    def test_offset_slices_results(self) -> None:
        rows = [{"title": f"t{i}", "body": "", "href": ""} for i in range(5)]
        ddgs_cls = self._patched_ddgs(rows)
        with patch("elnino_chat.services.search_service.DDGS", ddgs_cls):
            results = asyncio.run(DuckDuckGoSearchBackend().search("enso", 2, 3))
        assert [r.split("\n")[0] for r in results] == ["t3", "t4"]
        text_mock = ddgs_cls.return_value.__enter__.return_value.text
        assert text_mock.call_args.kwargs["max_results"] == 5

    def test_no_rows(self) -> None:
        ddgs_cls = self._patched_ddgs([])
        with patch("elnino_chat.services.search_service.DDGS", ddgs_cls):
            assert asyncio.run(DuckDuckGoSearchBackend().search("enso", 1, 0)) == []

    def _raising_ddgs(self, error: Exception) -> MagicMock:
        ddgs_cls = MagicMock()
        ddgs_cls.return_value.__enter__.return_value.text.side_effect = error
        return ddgs_cls

    def test_no_results_exception_is_empty(self) -> None:
        ddgs_cls = self._raising_ddgs(DDGSException("No results found."))
        with patch("elnino_chat.services.search_service.DDGS", ddgs_cls):
            assert asyncio.run(DuckDuckGoSearchBackend().search("enso", 1, 0)) == []

    def test_widener_tries_every_variant_when_ddgs_finds_nothing(self) -> None:
        ddgs_cls = self._raising_ddgs(DDGSException("No results found."))
        with patch("elnino_chat.services.search_service.DDGS", ddgs_cls):
            results = asyncio.run(QueryWidener(DuckDuckGoSearchBackend()).search("current status"))
        assert results == []
        text_mock = ddgs_cls.return_value.__enter__.return_value.text
        assert [c.args[0] for c in text_mock.call_args_list] == build_query_variants("current status")

    @pytest.mark.parametrize(
        "error",
        [
            TimeoutException("timed out"),
            RatelimitException("202 Ratelimit"),
            DDGSException("backend unavailable"),
        ],
    )
    def test_real_failures_propagate(self, error: Exception) -> None:
        ddgs_cls = self._raising_ddgs(error)
        with patch("elnino_chat.services.search_service.DDGS", ddgs_cls):
            with pytest.raises(type(error)):
                asyncio.run(DuckDuckGoSearchBackend().search("enso", 1, 0))
