"""Search API sources."""

from .github_search import BaseSearchClient, GitHubSearchClient, PaginatedFetcher

__all__ = [
    "BaseSearchClient",
    "GitHubSearchClient",
    "PaginatedFetcher",
]
