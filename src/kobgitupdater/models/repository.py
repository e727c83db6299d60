"""Repository related models."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OWNER_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?$")
REPO_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")
PLUGIN_SLUG_PATTERN = re.compile(r"^[^/\\]+/[^/\\]+\.php$")


class PackageKind(str, Enum):
    """Kind of WordPress package a repository delivers."""

    PLUGIN = "plugin"
    THEME = "theme"


def plugin_directory(slug: str) -> str:
    """Return the plugin folder of a ``folder/file.php`` slug (or a bare folder name)."""
    return slug.strip().strip("/").split("/", 1)[0]


class RepositoryConfig(BaseModel):
    """GitHub repository configuration for a managed plugin or theme."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    owner: str
    repo: str
    kind: PackageKind
    slug: str
    default_branch: str = "main"
    is_private: bool = False
    latest_known_version: str = ""
    date_added: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("owner")
    @classmethod
    def validate_owner(cls, v: str) -> str:
        """GitHub user/org names: 1-39 chars, alphanumerics and hyphens, no hyphen at either end."""
        v = v.strip()
        if not v:
            raise ValueError("Repository owner cannot be empty")
        if not OWNER_PATTERN.match(v):
            raise ValueError("Invalid repository owner format")
        return v

    @field_validator("repo")
    @classmethod
    def validate_repo(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Repository name cannot be empty")
        if not REPO_PATTERN.match(v):
            raise ValueError("Invalid repository name format")
        return v

    @field_validator("slug", "default_branch")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be empty")
        return v

    @field_validator("latest_known_version")
    @classmethod
    def strip_version(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def validate_slug_for_kind(self) -> "RepositoryConfig":
        """Plugins use ``folder/file.php``, themes a bare directory name."""
        if self.kind == PackageKind.PLUGIN:
            if not PLUGIN_SLUG_PATTERN.match(self.slug):
                raise ValueError("Plugin slug must look like 'folder/file.php'")
        elif "/" in self.slug or "\\" in self.slug:
            raise ValueError("Theme slug must be a bare directory name")
        if any(part in (".", "..") for part in self.slug.split("/")):
            raise ValueError("Slug cannot refer to the current or parent directory")
        return self

    @property
    def key(self) -> str:
        """Repository key in ``owner/repo`` form."""
        return f"{self.owner}/{self.repo}"

    @property
    def github_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"

    @property
    def directory_name(self) -> str:
        """Directory the package must be installed under."""
        if self.kind == PackageKind.PLUGIN:
            return plugin_directory(self.slug)
        return self.slug

    @property
    def is_plugin(self) -> bool:
        return self.kind == PackageKind.PLUGIN

    @property
    def is_theme(self) -> bool:
        return self.kind == PackageKind.THEME

    @property
    def sort_key(self) -> tuple[str, str]:
        """Sort by kind first, then by ``owner/repo``."""
        return (self.kind.value, self.key)

    def same_target(self, other: "RepositoryConfig") -> bool:
        """Whether both configs point at the same repository and installed package."""
        return self.key == other.key and self.kind == other.kind and self.slug == other.slug

    def __str__(self) -> str:
        return f"{self.key} ({self.kind.value}): {self.slug} [{self.default_branch}]"


class RepositoriesData(BaseModel):
    """Root structure of repositories.json."""

    repositories: list[Any] = Field(default_factory=list)
