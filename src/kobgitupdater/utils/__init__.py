"""Utilities for Kob Git Updater."""

from kobgitupdater.utils.subprocess_executor import SubprocessExecutor

__all__ = ["SubprocessExecutor"]
