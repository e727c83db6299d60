"""Repository registry service.

Manages repositories.json as the central list of GitHub repositories whose
plugins and themes are kept up to date.
"""

import json
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from kobgitupdater.exceptions import ApiError, ResourceConflictError, ResourceNotFoundError, ValidationError
from kobgitupdater.logger import get_logger
from kobgitupdater.models.repository import PackageKind, RepositoriesData, RepositoryConfig
from kobgitupdater.services.github.client import GitHubApiClient

logger = get_logger(__name__)


def _first_error(e: PydanticValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    message = str(errors[0].get("msg", ""))
    return message.removeprefix("Value error, ")


class RepositoryRegistry:
    """
    Central registry for managed repositories.

    Maintains an in-memory cache of repositories.json keyed by ``owner/repo``.
    All modifications are immediately persisted to disk.
    """

    def __init__(self, registry_file: Path, client: GitHubApiClient | None = None) -> None:
        """
        Initialize the registry.

        Args:
            registry_file: Path to repositories.json
            client: API client used to verify repositories on add and refresh
        """
        self.registry_file = registry_file
        self.client = client
        self._data: dict[str, RepositoryConfig] | None = None
        self._skipped: list[Any] = []
        self._load_error: str | None = None
        self._file_lock = threading.RLock()

    def _load(self) -> dict[str, RepositoryConfig]:
        """
        Load data from disk, skipping entries that no longer validate.

        Skipped entries are kept as read and written back by ``_save``. A file
        that cannot be parsed at all blocks saving until it is fixed or removed.
        """
        self._skipped = []
        self._load_error = None
        if not self.registry_file.exists():
            return {}

        try:
            with open(self.registry_file, encoding="utf-8") as f:
                content = json.load(f)
            if isinstance(content, list):
                content = {"repositories": content}
            raw = RepositoriesData(**content)
        except Exception as e:
            logger.error(f"Failed to load {self.registry_file.name}: {e}")
            self._load_error = str(e)
            return {}

        repositories: dict[str, RepositoryConfig] = {}
        for entry in raw.repositories:
            if not isinstance(entry, dict):
                logger.error(f"Skipping repository entry that is not an object: {entry!r}")
                self._skipped.append(entry)
                continue
            try:
                repository = RepositoryConfig(**entry)
            except (PydanticValidationError, TypeError) as e:
                logger.error(f"Skipping invalid repository entry {entry.get('owner')}/{entry.get('repo')}: {e}")
                self._skipped.append(entry)
                continue
            repositories[repository.key] = repository
        return repositories

    def _save(self) -> None:
        """
        Save data to disk.

        Raises:
            ResourceConflictError: If the file on disk could not be read
        """
        if self._data is None:
            return
        if self._load_error is not None:
            # Forget the unsaved change so memory matches the file again
            self._data = None
            raise ResourceConflictError(
                f"Refusing to overwrite unreadable {self.registry_file.name}: {self._load_error}",
                path=str(self.registry_file),
            )

        stored = [r.model_dump(mode="json") for r in sorted(self._data.values(), key=lambda r: r.sort_key)]
        skipped = [
            entry
            for entry in self._skipped
            if not isinstance(entry, dict) or f"{entry.get('owner')}/{entry.get('repo')}" not in self._data
        ]
        payload = RepositoriesData(repositories=stored + skipped)
        try:
            self.registry_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.registry_file, "w", encoding="utf-8") as f:
                json.dump(payload.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        except Exception as e:
            logger.error(f"Failed to save {self.registry_file.name}: {e}")
            raise

    def _ensure_loaded(self) -> dict[str, RepositoryConfig]:
        if self._data is None:
            self._data = self._load()
        return self._data

    def _require(self, key: str) -> RepositoryConfig:
        repository = self._ensure_loaded().get(key)
        if repository is None:
            raise ResourceNotFoundError(f"Repository not found: {key}", key=key)
        return repository

    def _fetch_repository_info(self, owner: str, repo: str) -> dict[str, Any]:
        if self.client is None:
            return {}
        try:
            info = self.client.get_repository(owner, repo)
        except ApiError as e:
            raise ValidationError(
                f"Repository {owner}/{repo} not found or not accessible: {e.message}",
                status_code=e.status,
            ) from e
        return info if isinstance(info, dict) else {}

    def add(self, owner: str, repo: str, kind: PackageKind | str, slug: str) -> RepositoryConfig:
        """
        Add a repository after checking it exists on GitHub.

        Args:
            owner: Repository owner
            repo: Repository name
            kind: ``plugin`` or ``theme``
            slug: Plugin slug (``folder/file.php``) or theme directory name

        Returns:
            The stored repository

        Raises:
            ValidationError: If the input is malformed or GitHub cannot see the repository
            ResourceConflictError: If the repository is already managed
        """
        try:
            repository = RepositoryConfig(owner=owner, repo=repo, kind=kind, slug=slug)
        except PydanticValidationError as e:
            raise ValidationError(_first_error(e)) from e

        with self._file_lock:
            data = self._ensure_loaded()
            if repository.key in data:
                raise ResourceConflictError(f"Repository already exists: {repository.key}", key=repository.key)

            info = self._fetch_repository_info(repository.owner, repository.repo)
            if info.get("default_branch"):
                repository.default_branch = str(info["default_branch"])
            repository.is_private = bool(info.get("private", False))

            data[repository.key] = repository
            self._save()

        logger.info(f"Added repository: {repository}")
        return repository

    def get(self, key: str) -> RepositoryConfig | None:
        with self._file_lock:
            return self._ensure_loaded().get(key)

    def list_all(self) -> list[RepositoryConfig]:
        """All repositories, plugins first, each kind ordered by key."""
        with self._file_lock:
            return sorted(self._ensure_loaded().values(), key=lambda r: r.sort_key)

    def get_by_kind(self, kind: PackageKind | str) -> list[RepositoryConfig]:
        kind = PackageKind(kind)
        return [r for r in self.list_all() if r.kind == kind]

    def update(self, key: str, slug: str | None = None, default_branch: str | None = None) -> RepositoryConfig:
        """
        Change the slug and/or default branch of a repository.

        Raises:
            ResourceNotFoundError: If the repository is not managed
            ValidationError: If the new values are invalid
        """
        with self._file_lock:
            current = self._require(key)
            changes: dict[str, str] = {}
            if slug is not None:
                changes["slug"] = slug
            if default_branch is not None:
                changes["default_branch"] = default_branch
            try:
                updated = RepositoryConfig(**{**current.model_dump(), **changes})
            except PydanticValidationError as e:
                raise ValidationError(_first_error(e)) from e

            self._ensure_loaded()[key] = updated
            self._save()

        logger.info(f"Updated repository: {updated}")
        return updated

    def remove(self, key: str) -> None:
        with self._file_lock:
            self._require(key)
            del self._ensure_loaded()[key]
            self._save()
        logger.info(f"Removed repository: {key}")

    def set_latest_version(self, key: str, version: str) -> RepositoryConfig:
        """Record the last version installed from a repository."""
        with self._file_lock:
            repository = self._require(key)
            repository.latest_known_version = version
            self._save()
        return repository

    def refresh_repository_info(self, key: str) -> RepositoryConfig:
        """
        Re-read default branch and visibility from GitHub.

        Raises:
            ResourceNotFoundError: If the repository is not managed
            ValidationError: If GitHub cannot see the repository any more
        """
        with self._file_lock:
            repository = self._require(key)
            if self.client is not None:
                self.client.clear_cache(repository.owner, repository.repo)
            info = self._fetch_repository_info(repository.owner, repository.repo)
            if info.get("default_branch"):
                repository.default_branch = str(info["default_branch"])
            if "private" in info:
                repository.is_private = bool(info["private"])
            self._save()

        logger.info(f"Refreshed repository info: {repository}")
        return repository

    def persist(self, repository: RepositoryConfig) -> None:
        """Insert or replace a repository by key."""
        with self._file_lock:
            self._ensure_loaded()[repository.key] = repository
            self._save()

    def load_all(self) -> list[RepositoryConfig]:
        return self.list_all()

    def reload(self) -> None:
        """Drop the in-memory cache so the next access re-reads the file."""
        with self._file_lock:
            self._data = None


_registry: RepositoryRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> RepositoryRegistry:
    """Get the global registry, built from the current configuration."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                from kobgitupdater.config import get_config

                config = get_config()
                assert config.paths.registry_file is not None
                _registry = RepositoryRegistry(config.paths.registry_file, GitHubApiClient.from_config(config))
    return _registry

