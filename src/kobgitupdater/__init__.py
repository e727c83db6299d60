"""Kob Git Updater: install and update WordPress plugins and themes from GitHub."""

__version__ = "1.3.1"
