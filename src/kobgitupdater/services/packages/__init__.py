"""Package download and installation services."""

from .fetcher import ArchiveFetcher, ExtractedArchive
from .installer import (
    CopyAndDeleteStrategy,
    FilesystemMoveStrategy,
    MoveStrategy,
    NativeCopyStrategy,
    PackageInstaller,
    ShellCommandStrategy,
)

__all__ = [
    "ArchiveFetcher",
    "ExtractedArchive",
    "PackageInstaller",
    "MoveStrategy",
    "FilesystemMoveStrategy",
    "CopyAndDeleteStrategy",
    "NativeCopyStrategy",
    "ShellCommandStrategy",
]
