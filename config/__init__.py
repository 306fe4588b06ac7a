"""
Configuration Management Module
"""
from .settings import (
    GitHubSettings,
    RenderSettings,
    SearchSettings,
    Settings,
    get_settings,
)

__all__ = [
    "GitHubSettings",
    "RenderSettings",
    "SearchSettings",
    "Settings",
    "get_settings",
]
