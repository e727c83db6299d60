"""Resolve the latest downloadable artifact of a GitHub repository."""

from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from kobgitupdater.exceptions import ApiError, ResolveError
from kobgitupdater.logger import get_logger
from kobgitupdater.models.update import BRANCH_VERSION_PREFIX, ResolvedUpdate, UpdateSource

from .client import GitHubApiClient

logger = get_logger(__name__)

DEFAULT_BRANCH = "main"


def strip_tag_prefix(tag: str) -> str:
    """``v1.2.3`` -> ``1.2.3``. Only a single leading ``v`` is removed."""
    tag = tag.strip()
    if tag[:1] in ("v", "V"):
        return tag[1:]
    return tag


def _parse_timestamp(value: Any) -> datetime | None:  # noqa: ANN401
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class ReleaseResolver:
    """
    Determines the authoritative "latest artifact" of a repository.

    Releases win; a repository without releases falls back to its default
    branch, versioned synthetically as ``dev-<branch>``.
    """

    def __init__(self, client: GitHubApiClient) -> None:
        self.client = client

    def resolve_download(self, owner: str, repo: str, fallback_branch: str = DEFAULT_BRANCH) -> ResolvedUpdate:
        """
        Resolve the version and zipball URL to install for a repository.

        Args:
            owner: Repository owner
            repo: Repository name
            fallback_branch: Branch to use when GitHub does not report a default branch

        Returns:
            The resolved update

        Raises:
            ResolveError: If the release lookup fails for any reason other than 404,
                or the repository lookup of the branch fallback fails
        """
        key = f"{owner}/{repo}"
        try:
            release = self.client.get_latest_release(owner, repo)
        except ApiError as e:
            if not e.is_not_found:
                logger.error(f"Failed to get latest release for {key}: {e}")
                raise ResolveError(
                    f"Could not look up the latest release of {key}: {e.message}", status=e.status
                ) from e
            logger.info(f"No releases found for {key}, falling back to the default branch")
            return self._resolve_branch(owner, repo, fallback_branch)

        resolved = self._from_release(owner, repo, release)
        if resolved is None:
            logger.info(f"Latest release of {key} has no usable tag, falling back to the default branch")
            return self._resolve_branch(owner, repo, fallback_branch)

        logger.info(f"Resolved {key} to release {resolved.ref} ({resolved.version})")
        return resolved

    def _from_release(self, owner: str, repo: str, release: Any) -> ResolvedUpdate | None:  # noqa: ANN401
        if not isinstance(release, dict):
            return None
        tag = str(release.get("tag_name") or "").strip()
        if not tag:
            return None

        download_url = release.get("zipball_url") or self.client.get_download_url(owner, repo, tag)
        return self._build(
            owner,
            repo,
            version=strip_tag_prefix(tag),
            download_url=download_url,
            source=UpdateSource.RELEASE,
            ref=tag,
            release_notes=release.get("body") or "",
            published_at=_parse_timestamp(release.get("published_at")),
        )

    def _build(self, owner: str, repo: str, **fields: Any) -> ResolvedUpdate:  # noqa: ANN401
        try:
            return ResolvedUpdate(**fields)
        except PydanticValidationError as e:
            invalid = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            logger.error(f"Unexpected release data for {owner}/{repo}: {e}")
            raise ResolveError(f"Unexpected release data for {owner}/{repo}: invalid {invalid}") from e

    def _resolve_branch(self, owner: str, repo: str, fallback_branch: str) -> ResolvedUpdate:
        key = f"{owner}/{repo}"
        try:
            details = self.client.get_repository(owner, repo)
        except ApiError as e:
            logger.error(f"Repository {key} is not accessible: both releases and repository info failed")
            raise ResolveError(f"Could not read the default branch of {key}: {e.message}", status=e.status) from e

        branch = ""
        if isinstance(details, dict):
            branch = str(details.get("default_branch") or "").strip()
        if not branch:
            branch = fallback_branch or DEFAULT_BRANCH
            logger.info(f"GitHub did not report a default branch for {key}, using {branch}")

        pushed_at = None
        if isinstance(details, dict):
            pushed_at = _parse_timestamp(details.get("pushed_at") or details.get("updated_at"))

        return self._build(
            owner,
            repo,
            version=f"{BRANCH_VERSION_PREFIX}{branch}",
            download_url=self.client.get_download_url(owner, repo, branch),
            source=UpdateSource.BRANCH,
            ref=branch,
            release_notes=f"Development version from {branch} branch",
            published_at=pushed_at,
        )
