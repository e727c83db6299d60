"""Tests for the filesystem host collaborator."""

from pathlib import Path

from kobgitupdater.models import PackageKind
from kobgitupdater.services.host import HEADER_SCAN_BYTES, WordPressHost, read_version_header

PLUGIN_HEADER = """<?php
/**
 * Plugin Name: My Plugin
 * Version: 1.2.3
 * Author: Acme
 */
"""


def make_host(tmp_path: Path) -> WordPressHost:
    return WordPressHost(tmp_path / "plugins", tmp_path / "themes")


def test_plugin_version_from_main_file(tmp_path: Path) -> None:
    plugin = tmp_path / "plugins" / "my-plugin"
    plugin.mkdir(parents=True)
    (plugin / "main.php").write_text(PLUGIN_HEADER)

    assert make_host(tmp_path).get_installed_version(PackageKind.PLUGIN, "my-plugin/main.php") == "1.2.3"


def test_plugin_version_falls_back_to_folder_file(tmp_path: Path) -> None:
    plugin = tmp_path / "plugins" / "my-plugin"
    plugin.mkdir(parents=True)
    (plugin / "my-plugin.php").write_text(PLUGIN_HEADER)

    assert make_host(tmp_path).get_installed_version(PackageKind.PLUGIN, "my-plugin/renamed.php") == "1.2.3"


def test_theme_version_from_stylesheet(tmp_path: Path) -> None:
    theme = tmp_path / "themes" / "starter"
    theme.mkdir(parents=True)
    (theme / "style.css").write_text("/*\nTheme Name: Starter\nVersion: dev-main\n*/\n")

    host = make_host(tmp_path)

    assert host.get_installed_version(PackageKind.THEME, "starter") == "dev-main"
    assert host.is_installed(PackageKind.THEME, "starter")


def test_missing_package_has_no_version(tmp_path: Path) -> None:
    host = make_host(tmp_path)

    assert host.get_installed_version(PackageKind.PLUGIN, "nope/nope.php") is None
    assert host.get_installed_version(PackageKind.THEME, "nope") is None
    assert not host.is_installed(PackageKind.PLUGIN, "nope/nope.php")


def test_header_beyond_scan_window_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "style.css"
    path.write_text("/*" + " " * HEADER_SCAN_BYTES + "\nVersion: 9.9\n*/")

    assert read_version_header(path) is None


def test_header_value_stops_at_comment_end(tmp_path: Path) -> None:
    path = tmp_path / "plugin.php"
    path.write_text("<?php /* Version: 2.0.1 */ ?>")

    assert read_version_header(path) == "2.0.1"


def test_notifications_shaped_like_transients(tmp_path: Path) -> None:
    host = make_host(tmp_path)

    host.notify_update_available(
        PackageKind.PLUGIN,
        "my-plugin/my-plugin.php",
        "2.0.0",
        "https://api.github.com/repos/acme/my-plugin/zipball/v2.0.0",
        {"url": "https://github.com/acme/my-plugin"},
    )
    host.notify_update_available(
        PackageKind.THEME, "starter", "dev-main", "https://api.github.com/repos/acme/starter/zipball/main", {}
    )

    plugin = host.pending_updates(PackageKind.PLUGIN)["my-plugin/my-plugin.php"]
    assert plugin["slug"] == "my-plugin"
    assert plugin["plugin"] == "my-plugin/my-plugin.php"
    assert plugin["new_version"] == "2.0.0"
    assert plugin["url"] == "https://github.com/acme/my-plugin"
    assert plugin["package"].endswith("/zipball/v2.0.0")

    theme = host.pending_updates(PackageKind.THEME)["starter"]
    assert theme["theme"] == "starter"
    assert theme["new_version"] == "dev-main"

    host.clear_pending_updates()
    assert host.pending_updates(PackageKind.PLUGIN) == {}
