"""Put extracted package content in place under the plugins or themes directory."""

import os
import shutil
from collections.abc import Sequence
from pathlib import Path

from kobgitupdater.exceptions import InstallError
from kobgitupdater.logger import get_logger
from kobgitupdater.models.config import AppConfig
from kobgitupdater.models.repository import PackageKind, plugin_directory
from kobgitupdater.models.update import InstallOperation
from kobgitupdater.utils.subprocess_executor import SubprocessExecutor

logger = get_logger(__name__)

DIR_MODE = 0o755
FILE_MODE = 0o644


def normalize_permissions(path: Path) -> None:
    """Recursively set directories to 0755 and files to 0644."""
    os.chmod(path, DIR_MODE)
    for root, dirs, files in os.walk(path):
        for d in dirs:
            os.chmod(os.path.join(root, d), DIR_MODE)
        for f in files:
            file_path = os.path.join(root, f)
            if not os.path.islink(file_path):
                os.chmod(file_path, FILE_MODE)


def _remove_source(source: Path) -> None:
    """Delete the moved-from directory. The copy already succeeded, so failure here is tolerated."""
    try:
        shutil.rmtree(source)
    except OSError as e:
        logger.info(f"Copy succeeded, delete of temporary source failed (acceptable): {e}")


class MoveStrategy:
    """One way of moving a directory to its final location."""

    name = "base"

    def move(self, source: Path, target: Path) -> None:
        """Move ``source`` to ``target`` (which must not exist). Raises on failure."""
        raise NotImplementedError


class FilesystemMoveStrategy(MoveStrategy):
    """Atomic rename. Fails when source and target sit on different filesystems."""

    name = "filesystem_move"

    def move(self, source: Path, target: Path) -> None:
        os.rename(source, target)


class CopyAndDeleteStrategy(MoveStrategy):
    """Recursive copy of the whole tree followed by deletion of the source."""

    name = "copy_and_delete"

    def move(self, source: Path, target: Path) -> None:
        shutil.copytree(source, target, symlinks=True)
        _remove_source(source)


class NativeCopyStrategy(MoveStrategy):
    """File-by-file copy, creating each directory explicitly."""

    name = "native_copy"

    def move(self, source: Path, target: Path) -> None:
        target.mkdir(mode=DIR_MODE, parents=True)
        for root, dirs, files in os.walk(source):
            rel = Path(root).relative_to(source)
            for d in dirs:
                (target / rel / d).mkdir(mode=DIR_MODE, exist_ok=True)
            for f in files:
                shutil.copyfile(Path(root) / f, target / rel / f, follow_symlinks=False)
        _remove_source(source)


class ShellCommandStrategy(MoveStrategy):
    """Last resort: ``cp -r``, then ``mv``."""

    name = "shell_command"

    def move(self, source: Path, target: Path) -> None:
        errors = []

        result = SubprocessExecutor.run_sync("cp", "-r", str(source), str(target))
        if result.returncode == 0 and target.is_dir():
            _remove_source(source)
            return
        errors.append(f"cp exited with {result.returncode}: {SubprocessExecutor.output_of(result)}")

        if target.exists():
            shutil.rmtree(target)

        result = SubprocessExecutor.run_sync("mv", str(source), str(target))
        if result.returncode == 0 and target.is_dir():
            return
        errors.append(f"mv exited with {result.returncode}: {SubprocessExecutor.output_of(result)}")

        raise OSError(", ".join(errors))


DEFAULT_STRATEGIES: tuple[MoveStrategy, ...] = (
    FilesystemMoveStrategy(),
    CopyAndDeleteStrategy(),
    NativeCopyStrategy(),
    ShellCommandStrategy(),
)


class PackageInstaller:
    """
    Replaces a plugin or theme directory with freshly extracted content.

    The existing directory is removed first (replace, never merge), then the
    content is moved in with the first strategy that works. The final
    directory is always named after the configured slug, never after the
    archive's ``{repo}-{hash}`` folder.
    """

    def __init__(
        self,
        plugins_dir: Path,
        themes_dir: Path,
        strategies: Sequence[MoveStrategy] | None = None,
    ) -> None:
        """
        Initialize the installer.

        Args:
            plugins_dir: WordPress plugins directory
            themes_dir: WordPress themes directory
            strategies: Ordered move strategies; defaults to rename, copytree, file copy, shell
        """
        self.plugins_dir = plugins_dir
        self.themes_dir = themes_dir
        self.strategies = list(strategies) if strategies is not None else list(DEFAULT_STRATEGIES)

    @classmethod
    def from_config(cls, config: AppConfig) -> "PackageInstaller":
        assert config.paths.plugins_dir is not None
        assert config.paths.themes_dir is not None
        return cls(config.paths.plugins_dir, config.paths.themes_dir)

    def expected_directory_name(self, kind: PackageKind, slug: str) -> str:
        """
        Directory name a package must end up under.

        Args:
            kind: Plugin or theme
            slug: Plugin slug (``folder/file.php`` or ``folder``) or theme directory name

        Raises:
            InstallError: If the slug does not yield a usable directory name
        """
        name = plugin_directory(slug) if kind == PackageKind.PLUGIN else slug.strip()
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise InstallError(f"Invalid {kind.value} slug for installation: {slug!r}")
        return name

    def target_path(self, kind: PackageKind, slug: str) -> Path:
        root = self.plugins_dir if kind == PackageKind.PLUGIN else self.themes_dir
        return root / self.expected_directory_name(kind, slug)

    def install(
        self,
        kind: PackageKind,
        extracted_content_path: Path,
        expected_slug: str,
        source_archive_path: Path | None = None,
    ) -> InstallOperation:
        """
        Install extracted content as the package named by ``expected_slug``.

        Args:
            kind: Plugin or theme
            extracted_content_path: The archive's top-level content directory
            expected_slug: Configured slug of the package
            source_archive_path: Archive the content came from, for diagnostics

        Returns:
            The completed install operation

        Raises:
            InstallError: If the old installation cannot be removed, the parent cannot
                be created, or every move strategy fails
        """
        kind = PackageKind(kind)
        operation = InstallOperation(
            kind=kind,
            expected_directory_name=self.expected_directory_name(kind, expected_slug),
            source_archive_path=source_archive_path,
            extracted_content_path=extracted_content_path,
            target_path=self.target_path(kind, expected_slug),
        )
        source = operation.extracted_content_path
        target = operation.target_path

        if not source.is_dir():
            raise InstallError(f"Extracted content directory does not exist: {source}")

        # Step 1: replace, never merge
        removed_existing = False
        if target.exists() or target.is_symlink():
            logger.info(f"Removing existing installation at {target}")
            try:
                if target.is_dir() and not target.is_symlink():
                    shutil.rmtree(target)
                else:
                    target.unlink()
            except OSError as e:
                raise InstallError(f"Failed to remove existing installation at {target}: {e}") from e
            removed_existing = True

        # Step 2: parent directory
        try:
            target.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            self._log_absent_target(target, removed_existing)
            raise InstallError(f"Failed to create parent directory {target.parent}: {e}") from e

        # Steps 3 and 4: first strategy that succeeds wins
        logger.info(f"Moving {source} to {target}")
        attempted: list[str] = []
        for strategy in self.strategies:
            if not source.exists():
                attempted.append(f"{strategy.name}: source directory no longer exists")
                break
            try:
                logger.info(f"Attempting {strategy.name}")
                strategy.move(source, target)
            except Exception as e:
                attempted.append(f"{strategy.name}: {e}")
                logger.warning(f"{strategy.name} failed: {e}")
                self._discard_partial_target(target)
                continue

            if target.is_dir():
                operation.method = strategy.name
                logger.info(f"{strategy.name} succeeded")
                break
            attempted.append(f"{strategy.name}: target directory missing after move")

        if operation.method is None:
            logger.error(f"All move methods failed: {'; '.join(attempted)}")
            self._log_absent_target(target, removed_existing)
            raise InstallError(
                "Failed to move extracted files to installation directory",
                attempted_methods=attempted,
                target=str(target),
            )

        # Step 5: permissions
        try:
            normalize_permissions(target)
        except OSError as e:
            logger.warning(f"Failed to normalize permissions under {target}: {e}")

        logger.info(f"Installed {kind.value} into {target} using {operation.method}")
        return operation

    def _discard_partial_target(self, target: Path) -> None:
        if not target.exists():
            return
        try:
            shutil.rmtree(target)
        except OSError as e:
            logger.error(f"Failed to remove partial installation at {target}: {e}")

    def _log_absent_target(self, target: Path, removed_existing: bool) -> None:
        if removed_existing:
            logger.error(
                f"Previous installation at {target} was removed and the new one could not be put in place. "
                "The package is now absent and requires manual intervention."
            )
