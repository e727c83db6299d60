"""Update resolution, decision and installation models."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from kobgitupdater.models.repository import PackageKind

BRANCH_VERSION_PREFIX = "dev-"


class UpdateSource(str, Enum):
    """Where a resolved version comes from."""

    RELEASE = "release"
    BRANCH = "branch"


class ResolvedUpdate(BaseModel):
    """Latest artifact of a repository, computed fresh on every check."""

    version: str
    download_url: str
    source: UpdateSource
    ref: str  # tag name or branch name the archive is built from
    release_notes: str = ""
    published_at: datetime | None = None

    @property
    def is_branch(self) -> bool:
        return self.source == UpdateSource.BRANCH


class UpdateAvailable(BaseModel):
    """A newer version should be offered."""

    version: str
    resolved: ResolvedUpdate


class NoUpdate(BaseModel):
    """Nothing to offer, with the reason for diagnostics."""

    reason: str


UpdateDecision = UpdateAvailable | NoUpdate


class UpdateCheckResult(BaseModel):
    """Outcome of checking one repository in a batch."""

    repository_key: str
    installed_version: str | None = None
    decision: UpdateDecision | None = None
    error: str | None = None

    @property
    def update_available(self) -> bool:
        return isinstance(self.decision, UpdateAvailable)


class InstallOperation(BaseModel):
    """A single move of extracted content into the plugins or themes directory."""

    kind: PackageKind
    expected_directory_name: str
    source_archive_path: Path | None = None
    extracted_content_path: Path
    target_path: Path
    method: str | None = None  # strategy that succeeded


class InstallResult(BaseModel):
    """Outcome of a successful install or update."""

    repository_key: str
    version: str
    target_path: Path
    method: str
    message: str
