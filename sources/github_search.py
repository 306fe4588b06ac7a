"""GitHub issue search client and the budgeted paginated fetcher."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from config import get_settings
from core import CancellationToken, FetchResult, FetchState, QueryDescriptor, SearchPage
from utils.exceptions import ConfigurationError, FetchError, OperationCancelled


logger = logging.getLogger(__name__)

SEARCH_ISSUES_PATH = "/search/issues"
# per_page ceiling of the search endpoint
MAX_PAGE_SIZE = 100


def _github_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "issue-notebook",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"{response.status_code} {response.reason_phrase}".strip()


class BaseSearchClient(ABC):
    """Issues one search request per call; owns its transport."""

    @abstractmethod
    async def search_issues(self, params: Dict[str, Any]) -> SearchPage:
        """Fetch one page for the given query parameters."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        pass


class GitHubSearchClient(BaseSearchClient):
    """``GET /search/issues`` over a shared httpx.AsyncClient."""

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        github_settings = get_settings().github
        self._token = token if token is not None else github_settings.token
        self._api_url = str(api_url or github_settings.api_url).rstrip("/")
        self._timeout = httpx.Timeout(float(timeout or github_settings.request_timeout))
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                headers=_github_headers(self._token),
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def search_issues(self, params: Dict[str, Any]) -> SearchPage:
        client = self._get_client()
        try:
            response = await client.get(SEARCH_ISSUES_PATH, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(f"Search request failed: {exc}", source="github") from exc

        if response.status_code >= 400:
            raise FetchError(
                _error_message(response),
                source="github",
                status_code=response.status_code,
                query=params.get("q"),
            )

        try:
            return SearchPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FetchError(f"Malformed search response: {exc}", source="github") from exc

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class PaginatedFetcher:
    """Walks result pages of one query until the item budget or total is reached."""

    def __init__(
        self,
        client: BaseSearchClient,
        *,
        page_size: Optional[int] = None,
        item_budget: Optional[int] = None,
    ) -> None:
        search_settings = get_settings().search
        self._client = client
        self.page_size = int(page_size or search_settings.page_size)
        self.item_budget = int(item_budget or search_settings.item_budget)
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}",
                {"page_size": self.page_size},
            )
        if self.item_budget < 1:
            raise ConfigurationError("item_budget must be positive", {"item_budget": self.item_budget})

    async def fetch(self, descriptor: QueryDescriptor, token: CancellationToken) -> FetchResult:
        """
        Fetch the items of one query.

        Cancellation ends the loop without error and returns what was
        accumulated; any other failure raises ``FetchError``.
        """
        state = FetchState()
        result = FetchResult(descriptor=descriptor)

        while not token.is_cancellation_requested:
            params = dict(descriptor.to_params())
            params["per_page"] = self.page_size
            params["page"] = state.page

            try:
                page = await token.race(self._client.search_issues(params))
            except OperationCancelled:
                logger.info("search cancelled q=%r page=%s", descriptor.q, state.page)
                break

            if result.pages_fetched == 0:
                state.total_count = page.total_count
            result.pages_fetched += 1
            result.items.extend(page.items)
            state.items_so_far += len(page.items)

            if not page.items or state.items_so_far >= min(self.item_budget, state.total_count):
                break
            state.page += 1

        result.total_count = state.total_count
        result.cancelled = token.is_cancellation_requested
        logger.info(
            "search q=%r pages=%s items=%s total=%s cancelled=%s",
            descriptor.q,
            result.pages_fetched,
            len(result.items),
            result.total_count,
            result.cancelled,
        )
        return result
