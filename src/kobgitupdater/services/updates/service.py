"""Update orchestration: check managed repositories and install their latest versions."""

import threading
from typing import Any

from kobgitupdater.exceptions import AppBaseError, ResolveError, ResourceNotFoundError
from kobgitupdater.logger import get_logger
from kobgitupdater.models.repository import PackageKind, RepositoryConfig
from kobgitupdater.models.update import InstallResult, UpdateAvailable, UpdateCheckResult
from kobgitupdater.services.github.client import GitHubApiClient
from kobgitupdater.services.github.resolver import ReleaseResolver
from kobgitupdater.services.host import HostUpdateRegistry, RepositoryStore, WordPressHost
from kobgitupdater.services.packages.fetcher import ArchiveFetcher
from kobgitupdater.services.packages.installer import PackageInstaller
from kobgitupdater.services.registry import get_registry

from .version import decide

logger = get_logger(__name__)


class UpdateService:
    """
    Ties the resolver, fetcher, installer, registry and host together.

    Checks run sequentially and never stop at the first failing repository.
    Installs hold a per-repository lock so the same package is never written
    by two installs at once.
    """

    def __init__(
        self,
        client: GitHubApiClient,
        resolver: ReleaseResolver,
        fetcher: ArchiveFetcher,
        installer: PackageInstaller,
        registry: RepositoryStore,
        host: HostUpdateRegistry,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.fetcher = fetcher
        self.installer = installer
        self.registry = registry
        self.host = host
        self._install_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _install_lock(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._install_locks.get(key)
            if lock is None:
                lock = self._install_locks[key] = threading.Lock()
            return lock

    def sync_token(self, token: str | None) -> None:
        """Hand a (possibly new) token to the API client, dropping stale cached responses."""
        self.client.set_token(token)

    def check_repository(self, repository: RepositoryConfig) -> UpdateCheckResult:
        """
        Check one repository and notify the host when an update should be offered.

        Raises:
            AppBaseError: If the latest artifact cannot be resolved
        """
        installed = self.host.get_installed_version(repository.kind, repository.slug)
        resolved = self.resolver.resolve_download(
            repository.owner, repository.repo, fallback_branch=repository.default_branch
        )
        decision = decide(installed, resolved)

        if isinstance(decision, UpdateAvailable):
            metadata: dict[str, Any] = {
                "url": repository.github_url,
                "release_notes": resolved.release_notes,
                "published_at": resolved.published_at.isoformat() if resolved.published_at else None,
                "source": resolved.source.value,
                "installed": installed is not None,
            }
            self.host.notify_update_available(
                repository.kind, repository.slug, decision.version, resolved.download_url, metadata
            )
            logger.info(f"Update available for {repository.key}: {installed or 'not installed'} -> {decision.version}")
        else:
            logger.debug(f"No update for {repository.key}: {decision.reason}")

        return UpdateCheckResult(repository_key=repository.key, installed_version=installed, decision=decision)

    def check_for_updates(self, kind: PackageKind | str | None = None) -> list[UpdateCheckResult]:
        """
        Check every managed repository, optionally only plugins or only themes.

        A failing repository is reported in its result and the batch carries on.
        """
        repositories = self.registry.list_all() if kind is None else self.registry.get_by_kind(kind)
        logger.info(f"Checking {len(repositories)} repositories for updates")

        results = []
        for repository in repositories:
            try:
                results.append(self.check_repository(repository))
            except AppBaseError as e:
                logger.error(f"Update check failed for {repository.key}: {e}")
                results.append(UpdateCheckResult(repository_key=repository.key, error=str(e)))
        return results

    def install_repository(self, key: str) -> InstallResult:
        """
        Download and install the latest version of a managed repository.

        Args:
            key: Repository key in ``owner/repo`` form

        Returns:
            The install result

        Raises:
            ResourceNotFoundError: If the repository is not managed
            ResolveError: If no download target can be determined
            FetchError: If the archive cannot be downloaded or is malformed
            InstallError: If the content cannot be put in place
        """
        repository = self.registry.get(key)
        if repository is None:
            raise ResourceNotFoundError(f"Repository not found: {key}", key=key)

        with self._install_lock(repository.key):
            logger.info(
                f"Installing repository {repository.key} with token: {'YES' if self.client.has_token else 'NO'}"
            )
            try:
                resolved = self.resolver.resolve_download(
                    repository.owner, repository.repo, fallback_branch=repository.default_branch
                )
            except ResolveError as e:
                raise ResolveError(self.build_repository_error_message(repository, e), status=e.status) from e

            with self.fetcher.fetch_and_extract(resolved.download_url, self.client.token) as archive:
                operation = self.installer.install(
                    repository.kind,
                    archive.content_dir,
                    repository.slug,
                    source_archive_path=archive.archive_path,
                )

            self.registry.set_latest_version(repository.key, resolved.version)

        kind_label = "Plugin" if repository.is_plugin else "Theme"
        message = f"{kind_label} {repository.slug} installed successfully (version {resolved.version})"
        logger.info(message)
        assert operation.method is not None
        return InstallResult(
            repository_key=repository.key,
            version=resolved.version,
            target_path=operation.target_path,
            method=operation.method,
            message=message,
        )

    def update_repository(self, key: str) -> InstallResult:
        """Reinstall the latest version over the existing one."""
        return self.install_repository(key)

    def build_repository_error_message(self, repository: RepositoryConfig, error: Exception | None = None) -> str:
        """
        Diagnostic text for a repository that cannot be accessed.

        Reports whether a token is configured and its length, never its value.
        """
        lines = [
            f"Unable to access repository: {repository.key}",
            "",
            "Repository Details:",
            f"- URL: {repository.github_url}",
            f"- Type: {repository.kind.value}",
            f"- Slug: {repository.slug}",
            f"- Is Private: {'Yes' if repository.is_private else 'No'}",
            f"- Default Branch: {repository.default_branch or 'Not specified'}",
        ]
        if error is not None:
            lines.append(f"- Error: {error}")

        lines += ["", "Authentication Status:"]
        token = self.client.token
        if not token:
            lines += [
                "- GitHub Token: NOT PROVIDED",
                "- Public repositories only are accessible",
                "",
                "Possible Causes:",
                "1. Repository is private and requires authentication",
                "2. Repository does not exist or was renamed",
                "3. Repository owner/name is incorrect",
            ]
        else:
            lines += [
                f"- GitHub Token: PROVIDED ({len(token)} characters)",
                "",
                "Possible Causes:",
                "1. Repository does not exist or was renamed",
                "2. Repository owner/name is incorrect",
                "3. GitHub token lacks required permissions",
                "4. GitHub token has expired or been revoked",
            ]
        return "\n".join(lines)

    def close(self) -> None:
        self.client.close()
        self.fetcher.close()


_update_service: UpdateService | None = None
_service_lock = threading.Lock()


def get_update_service() -> UpdateService:
    """Get the global update service, sharing the global registry and its API client."""
    global _update_service
    if _update_service is None:
        with _service_lock:
            if _update_service is None:
                from kobgitupdater.config import get_config

                config = get_config()
                registry = get_registry()
                client = registry.client or GitHubApiClient.from_config(config)
                _update_service = UpdateService(
                    client=client,
                    resolver=ReleaseResolver(client),
                    fetcher=ArchiveFetcher.from_config(config),
                    installer=PackageInstaller.from_config(config),
                    registry=registry,
                    host=WordPressHost.from_config(config),
                )
    return _update_service
