"""Configuration data models for Kob Git Updater."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class GitHubConfig(BaseModel):
    """GitHub API configuration."""

    token: str = ""
    api_base_url: str = "https://api.github.com"
    api_timeout: float = 15.0
    download_timeout: float = 300.0  # Large archives need a long timeout
    cache_ttl: int = 3600

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the API base URL."""
        return v.rstrip("/")

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        return v.strip()


class PathsConfig(BaseModel):
    """Paths configuration."""

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".kob-git-updater")
    content_dir: Path = Path("/var/www/html/wp-content")
    plugins_dir: Path | None = None
    themes_dir: Path | None = None
    registry_file: Path | None = None
    temp_dir: Path | None = None

    @field_validator("data_dir", "content_dir", mode="before")
    @classmethod
    def expand_dir(cls, v: str | Path) -> Path:
        """Expand user path for required directories."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("plugins_dir", "themes_dir", "registry_file", "temp_dir", mode="before")
    @classmethod
    def expand_optional_path(cls, v: str | Path | None) -> Path | None:
        """Expand user path for optional paths."""
        if v is None:
            return None
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    def model_post_init(self, __context: object) -> None:
        """Set default subdirectories if not specified."""
        if self.plugins_dir is None:
            self.plugins_dir = self.content_dir / "plugins"
        if self.themes_dir is None:
            self.themes_dir = self.content_dir / "themes"
        if self.registry_file is None:
            self.registry_file = self.data_dir / "repositories.json"


class AdvancedConfig(BaseModel):
    """Advanced configuration."""

    log_level: Literal["INFO", "DEBUG", "TRACE"] = "INFO"


class AppConfig(BaseModel):
    """Application configuration."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    advanced: AdvancedConfig = Field(default_factory=AdvancedConfig)
