from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from config import get_settings
from core import CancellationTokenSource, QueryDescriptor, SearchPage, SortKey, SortOrder, never_cancelled
from sources.github_search import BaseSearchClient, GitHubSearchClient, PaginatedFetcher
from utils.exceptions import ConfigurationError, FetchError


def _raw_item(item_id: int) -> Dict[str, Any]:
    return {
        "id": item_id,
        "number": item_id,
        "title": f"issue {item_id}",
        "html_url": f"https://github.com/acme/app/issues/{item_id}",
        "repository_url": "https://api.github.com/repos/acme/app",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
        "closed_at": None,
        "comments": 0,
        "labels": [{"name": "bug", "color": "d73a4a", "id": 1}],
        "user": {"login": "octocat", "html_url": "https://github.com/octocat", "id": 7},
        "score": 1.0,
    }


class _FakeClient(BaseSearchClient):
    """Serves pages of sequential ids for a fixed total."""

    def __init__(self, total_count: int, *, on_call: Optional[Callable[[int], None]] = None, empty: bool = False):
        self.total_count = total_count
        self.on_call = on_call
        self.empty = empty
        self.calls: List[Dict[str, Any]] = []

    async def search_issues(self, params: Dict[str, Any]) -> SearchPage:
        self.calls.append(dict(params))
        if self.on_call:
            self.on_call(len(self.calls))
        if self.empty:
            return SearchPage(total_count=self.total_count, items=[])
        per_page = int(params["per_page"])
        start = (int(params["page"]) - 1) * per_page
        stop = min(start + per_page, self.total_count)
        return SearchPage.model_validate(
            {"total_count": self.total_count, "items": [_raw_item(i) for i in range(start, stop)]}
        )


@pytest.mark.asyncio
async def test_fetch_stops_at_item_budget() -> None:
    client = _FakeClient(total_count=5000)
    fetcher = PaginatedFetcher(client, page_size=100, item_budget=1000)

    result = await fetcher.fetch(QueryDescriptor(q="is:open"), never_cancelled())

    assert len(client.calls) == 10
    assert [call["page"] for call in client.calls] == list(range(1, 11))
    assert len(result.items) == 1000
    assert result.total_count == 5000
    assert result.cancelled is False


@pytest.mark.asyncio
async def test_fetch_stops_when_total_reached() -> None:
    client = _FakeClient(total_count=150)
    fetcher = PaginatedFetcher(client, page_size=100, item_budget=1000)

    result = await fetcher.fetch(QueryDescriptor(q="is:open"), never_cancelled())

    assert len(client.calls) == 2
    assert [item.id for item in result.items] == list(range(150))


@pytest.mark.asyncio
async def test_fetch_sends_sort_params_only_when_sorted() -> None:
    client = _FakeClient(total_count=1)
    fetcher = PaginatedFetcher(client, page_size=100, item_budget=1000)

    await fetcher.fetch(QueryDescriptor(q="repo:acme/app", sort=SortKey.CREATED, order=SortOrder.ASC), never_cancelled())
    await fetcher.fetch(QueryDescriptor(q="repo:acme/app"), never_cancelled())

    assert client.calls[0] == {"q": "repo:acme/app", "sort": "created", "order": "asc", "per_page": 100, "page": 1}
    assert client.calls[1] == {"q": "repo:acme/app", "per_page": 100, "page": 1}


@pytest.mark.asyncio
async def test_cancel_after_first_page_returns_first_page_only() -> None:
    source = CancellationTokenSource()
    client = _FakeClient(total_count=200, on_call=lambda _: source.cancel())
    fetcher = PaginatedFetcher(client, page_size=100, item_budget=1000)

    result = await fetcher.fetch(QueryDescriptor(q="is:open"), source.token)

    assert len(client.calls) == 1
    assert [item.id for item in result.items] == list(range(100))
    assert result.cancelled is True


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_request() -> None:
    class _HangingClient(BaseSearchClient):
        async def search_issues(self, params):
            await asyncio.sleep(30)
            raise AssertionError("request should have been aborted")

    source = CancellationTokenSource()
    fetcher = PaginatedFetcher(_HangingClient(), page_size=100, item_budget=1000)
    asyncio.get_running_loop().call_later(0.01, source.cancel)

    result = await fetcher.fetch(QueryDescriptor(q="is:open"), source.token)

    assert result.items == []
    assert result.pages_fetched == 0
    assert result.cancelled is True


@pytest.mark.asyncio
async def test_empty_page_ends_loop() -> None:
    client = _FakeClient(total_count=500, empty=True)
    fetcher = PaginatedFetcher(client, page_size=100, item_budget=1000)

    result = await fetcher.fetch(QueryDescriptor(q="is:open"), never_cancelled())

    assert len(client.calls) == 1
    assert result.items == []
    assert result.total_count == 500


@pytest.mark.asyncio
async def test_fetch_error_propagates_without_retry() -> None:
    class _FailingClient(BaseSearchClient):
        def __init__(self):
            self.calls = 0

        async def search_issues(self, params):
            self.calls += 1
            raise FetchError("API rate limit exceeded", source="github", status_code=403)

    client = _FailingClient()
    fetcher = PaginatedFetcher(client, page_size=100, item_budget=1000)

    with pytest.raises(FetchError, match="rate limit"):
        await fetcher.fetch(QueryDescriptor(q="is:open"), never_cancelled())
    assert client.calls == 1


@pytest.mark.asyncio
async def test_github_client_requests_search_endpoint() -> None:
    seen: List[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"total_count": 1, "incomplete_results": False, "items": [_raw_item(42)]})

    async with GitHubSearchClient(
        token="secret",
        api_url="https://api.example.test",
        transport=httpx.MockTransport(_handler),
    ) as client:
        page = await client.search_issues({"q": "is:issue", "per_page": 100, "page": 1})

    assert page.total_count == 1
    assert page.items[0].id == 42
    assert page.items[0].labels[0].name == "bug"
    request = seen[0]
    assert request.url.path == "/search/issues"
    assert request.url.params["q"] == "is:issue"
    assert request.url.params["per_page"] == "100"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["Accept"] == "application/vnd.github+json"


@pytest.mark.asyncio
async def test_github_client_maps_api_errors() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Validation Failed"})

    async with GitHubSearchClient(
        token="",
        api_url="https://api.example.test",
        transport=httpx.MockTransport(_handler),
    ) as client:
        with pytest.raises(FetchError) as excinfo:
            await client.search_issues({"q": "bad:", "per_page": 100, "page": 1})

    assert excinfo.value.message == "Validation Failed"
    assert excinfo.value.status_code == 422


@pytest.mark.asyncio
async def test_github_client_maps_transport_errors() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with GitHubSearchClient(
        token="",
        api_url="https://api.example.test",
        transport=httpx.MockTransport(_handler),
    ) as client:
        with pytest.raises(FetchError, match="connection refused"):
            await client.search_issues({"q": "is:issue", "per_page": 100, "page": 1})


def test_fetcher_rejects_invalid_paging_settings() -> None:
    client = _FakeClient(total_count=1)

    with pytest.raises(ConfigurationError, match="page_size"):
        PaginatedFetcher(client, page_size=500, item_budget=1000)
    with pytest.raises(ConfigurationError, match="item_budget"):
        PaginatedFetcher(client, page_size=100, item_budget=-5)


def test_fetcher_reads_paging_defaults_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("SEARCH_PAGE_SIZE", "50")
    monkeypatch.setenv("SEARCH_ITEM_BUDGET", "200")
    get_settings.cache_clear()
    try:
        fetcher = PaginatedFetcher(_FakeClient(total_count=1))
    finally:
        get_settings.cache_clear()

    assert (fetcher.page_size, fetcher.item_budget) == (50, 200)
