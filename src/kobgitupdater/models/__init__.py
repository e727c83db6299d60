"""Data models for Kob Git Updater."""

from kobgitupdater.models.config import AppConfig
from kobgitupdater.models.repository import PackageKind, RepositoryConfig
from kobgitupdater.models.update import (
    InstallOperation,
    InstallResult,
    NoUpdate,
    ResolvedUpdate,
    UpdateAvailable,
    UpdateCheckResult,
    UpdateDecision,
    UpdateSource,
)

__all__ = [
    "AppConfig",
    "PackageKind",
    "RepositoryConfig",
    "ResolvedUpdate",
    "UpdateSource",
    "UpdateAvailable",
    "NoUpdate",
    "UpdateDecision",
    "UpdateCheckResult",
    "InstallOperation",
    "InstallResult",
]
