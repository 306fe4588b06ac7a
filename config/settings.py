"""
Settings Configuration
Pydantic-backed configuration for the search, render and GitHub layers
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class GitHubSettings(BaseSettings):
    """GitHub API configuration"""
    token: Optional[str] = Field(default=None, description="GitHub Token")
    api_url: str = Field(default="https://api.github.com", description="REST API base URL")
    request_timeout: float = Field(default=30.0, description="Request timeout (seconds)")

    class Config:
        env_prefix = "GITHUB_"


class SearchSettings(BaseSettings):
    """Search pagination limits"""
    page_size: int = Field(default=100, description="Items per search page")
    item_budget: int = Field(default=1000, description="Max items fetched per query")

    class Config:
        env_prefix = "SEARCH_"


class RenderSettings(BaseSettings):
    """Output rendering options"""
    collapse_threshold: int = Field(default=12, description="Rows shown before collapsing")
    start_working_link: bool = Field(default=False, description="Render 'Start Working' deep links")

    class Config:
        env_prefix = "RENDER_"


class Settings(BaseSettings):
    """Main settings, aggregating all sub settings"""

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings, reading the given .env file first when it exists"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            github=GitHubSettings(),
            search=SearchSettings(),
            render=RenderSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Global settings singleton"""
    return Settings.load_from_env_file()
