"""Interfaces to the content-management host, plus a filesystem implementation."""

import re
import threading
from pathlib import Path
from typing import Any, Protocol

from kobgitupdater.logger import get_logger
from kobgitupdater.models.config import AppConfig
from kobgitupdater.models.repository import PackageKind, RepositoryConfig, plugin_directory

logger = get_logger(__name__)

# WordPress only reads this much of a file when looking for headers
HEADER_SCAN_BYTES = 8 * 1024

VERSION_HEADER = re.compile(r"^(?:[ \t]*<\?php)?[ \t/*#@]*Version:(.*)$", re.MULTILINE | re.IGNORECASE)


class HostUpdateRegistry(Protocol):
    """What the host exposes for reading installed versions and receiving update offers."""

    def get_installed_version(self, kind: PackageKind, slug: str) -> str | None: ...

    def notify_update_available(
        self,
        kind: PackageKind,
        slug: str,
        version: str,
        download_url: str,
        metadata: dict[str, Any],
    ) -> None: ...


class RepositoryStore(Protocol):
    """Durable storage of managed repositories."""

    def persist(self, repository: RepositoryConfig) -> None: ...

    def load_all(self) -> list[RepositoryConfig]: ...

    def get(self, key: str) -> RepositoryConfig | None: ...

    def list_all(self) -> list[RepositoryConfig]: ...

    def get_by_kind(self, kind: PackageKind | str) -> list[RepositoryConfig]: ...

    def set_latest_version(self, key: str, version: str) -> RepositoryConfig: ...


def read_version_header(path: Path) -> str | None:
    """
    Read the ``Version:`` header from a plugin main file or a theme's style.css.

    Args:
        path: File to scan

    Returns:
        The header value, or None when the file or header is missing
    """
    try:
        with open(path, "rb") as f:
            head = f.read(HEADER_SCAN_BYTES)
    except OSError:
        return None

    text = head.decode("utf-8", errors="replace").replace("\r", "\n")
    match = VERSION_HEADER.search(text)
    if not match:
        return None
    # Header values end at a closing comment marker
    value = re.sub(r"\s*(?:\*/|\?>).*$", "", match.group(1)).strip()
    return value or None


class WordPressHost:
    """
    Host collaborator backed by a WordPress content directory.

    Pending update notifications are kept in memory per kind, shaped like the
    ``update_plugins`` and ``update_themes`` transients.
    """

    def __init__(self, plugins_dir: Path, themes_dir: Path) -> None:
        self.plugins_dir = plugins_dir
        self.themes_dir = themes_dir
        self._pending: dict[PackageKind, dict[str, dict[str, Any]]] = {kind: {} for kind in PackageKind}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig) -> "WordPressHost":
        assert config.paths.plugins_dir is not None
        assert config.paths.themes_dir is not None
        return cls(config.paths.plugins_dir, config.paths.themes_dir)

    def _plugin_candidates(self, slug: str) -> list[Path]:
        folder = plugin_directory(slug)
        candidates = [self.plugins_dir / slug]
        if folder:
            candidates += [
                self.plugins_dir / folder / f"{folder}.php",
                self.plugins_dir / folder / "index.php",
            ]
        return candidates

    def get_installed_version(self, kind: PackageKind, slug: str) -> str | None:
        """Version header of an installed plugin or theme, None if not installed."""
        if PackageKind(kind) == PackageKind.THEME:
            return read_version_header(self.themes_dir / slug / "style.css")

        for candidate in self._plugin_candidates(slug):
            if candidate.is_file():
                version = read_version_header(candidate)
                if version:
                    return version
        return None

    def is_installed(self, kind: PackageKind, slug: str) -> bool:
        if PackageKind(kind) == PackageKind.THEME:
            return (self.themes_dir / slug).is_dir()
        return (self.plugins_dir / plugin_directory(slug)).is_dir()

    def notify_update_available(
        self,
        kind: PackageKind,
        slug: str,
        version: str,
        download_url: str,
        metadata: dict[str, Any],
    ) -> None:
        kind = PackageKind(kind)
        url = metadata.get("url", "")
        if kind == PackageKind.PLUGIN:
            payload = {
                "slug": plugin_directory(slug),
                "plugin": slug,
                "new_version": version,
                "url": url,
                "package": download_url,
            }
        else:
            payload = {"theme": slug, "new_version": version, "url": url, "package": download_url}

        with self._lock:
            self._pending[kind][slug] = {**payload, "metadata": dict(metadata)}
        logger.info(f"Update available for {kind.value} {slug}: {version}")

    def pending_updates(self, kind: PackageKind) -> dict[str, dict[str, Any]]:
        with self._lock:
            return dict(self._pending[PackageKind(kind)])

    def clear_pending_updates(self) -> None:
        with self._lock:
            for pending in self._pending.values():
                pending.clear()
