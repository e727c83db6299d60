"""Configuration management for Kob Git Updater."""

import os
import sys
from pathlib import Path
from typing import Any

import yaml

from kobgitupdater.models.config import AppConfig

ENV_PREFIX = "KGU_"


def default_config_path() -> Path:
    """``KGU_CONFIG_PATH``, else the platform's per-user config directory."""
    env_path = os.getenv(f"{ENV_PREFIX}CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()

    if sys.platform == "win32":
        config_dir = Path(os.getenv("APPDATA", str(Path.home()))) / "KobGitUpdater"
    elif sys.platform == "darwin":
        config_dir = Path.home() / "Library" / "Application Support" / "KobGitUpdater"
    else:
        config_dir = Path.home() / ".config" / "kob-git-updater"
    return config_dir / "config.yaml"


class ConfigManager:
    """Loads config.yaml into ``AppConfig`` and layers ``KGU_*`` environment variables on top."""

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Path to config file; ``default_config_path()`` if None
        """
        self.config_path = config_path if config_path is not None else default_config_path()
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        """Load configuration from file and apply environment variable overrides.

        A missing file yields the defaults.
        """
        config_data: dict[str, Any] = {}
        if self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}

        return self._apply_env_overrides(AppConfig(**config_data))

    def save(self, config: AppConfig) -> None:
        """Write configuration as YAML, creating the parent directory."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                config.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )

    def _apply_env_overrides(self, config: AppConfig) -> AppConfig:
        """Apply environment variable overrides.

        Examples:
            - KGU_GITHUB_TOKEN=ghp_xxx
            - KGU_CONTENT_DIR=/srv/wordpress/wp-content

        Paths derived from ``data_dir`` or ``content_dir`` follow an override of
        their base directory unless the config file set them explicitly.
        """
        github = config.github
        if token := os.getenv(f"{ENV_PREFIX}GITHUB_TOKEN"):
            github.token = token.strip()
        if base_url := os.getenv(f"{ENV_PREFIX}GITHUB_API_BASE_URL"):
            github.api_base_url = base_url.rstrip("/")
        if cache_ttl := os.getenv(f"{ENV_PREFIX}CACHE_TTL"):
            github.cache_ttl = int(cache_ttl)

        paths = config.paths
        if data_dir := os.getenv(f"{ENV_PREFIX}DATA_DIR"):
            old = paths.data_dir
            paths.data_dir = Path(data_dir).expanduser()
            if paths.registry_file == old / "repositories.json":
                paths.registry_file = None
        if content_dir := os.getenv(f"{ENV_PREFIX}CONTENT_DIR"):
            old = paths.content_dir
            paths.content_dir = Path(content_dir).expanduser()
            if paths.plugins_dir == old / "plugins":
                paths.plugins_dir = None
            if paths.themes_dir == old / "themes":
                paths.themes_dir = None
        paths.model_post_init(None)

        log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "").upper()
        if log_level in ("INFO", "DEBUG", "TRACE"):
            config.advanced.log_level = log_level  # type: ignore[assignment]

        return config

    def get_config(self) -> AppConfig:
        if self._config is None:
            self._config = self.load()
        return self._config

    def reload(self) -> AppConfig:
        self._config = self.load()
        return self._config


# Global configuration manager instance
_config_manager = ConfigManager()


def get_config() -> AppConfig:
    """Get global application configuration."""
    return _config_manager.get_config()


def reload_config() -> AppConfig:
    """Re-read the configuration file and environment."""
    return _config_manager.reload()


def save_config(config: AppConfig) -> None:
    """Save configuration to the global config file."""
    _config_manager.save(config)
