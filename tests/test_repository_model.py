"""Tests for repository configuration models."""

import pytest
from pydantic import ValidationError

from kobgitupdater.models import PackageKind, RepositoryConfig
from kobgitupdater.models.repository import plugin_directory


def test_plugin_repository_properties() -> None:
    repo = RepositoryConfig(owner="acme", repo="my-plugin", kind="plugin", slug="my-plugin/my-plugin.php")

    assert repo.key == "acme/my-plugin"
    assert repo.github_url == "https://github.com/acme/my-plugin"
    assert repo.directory_name == "my-plugin"
    assert repo.is_plugin
    assert not repo.is_theme
    assert repo.default_branch == "main"
    assert str(repo) == "acme/my-plugin (plugin): my-plugin/my-plugin.php [main]"


def test_theme_directory_is_the_slug() -> None:
    repo = RepositoryConfig(owner="acme", repo="starter-theme", kind=PackageKind.THEME, slug="starter")

    assert repo.directory_name == "starter"
    assert repo.is_theme


def test_values_are_stripped() -> None:
    repo = RepositoryConfig(owner="  acme ", repo=" tool.kit ", kind="theme", slug=" starter ")

    assert repo.owner == "acme"
    assert repo.repo == "tool.kit"
    assert repo.slug == "starter"


@pytest.mark.parametrize("owner", ["", "-acme", "acme-", "ac_me", "a" * 40])
def test_invalid_owner_rejected(owner: str) -> None:
    with pytest.raises(ValidationError):
        RepositoryConfig(owner=owner, repo="repo", kind="theme", slug="starter")


@pytest.mark.parametrize("repo", ["", "my repo", "repo/name"])
def test_invalid_repo_name_rejected(repo: str) -> None:
    with pytest.raises(ValidationError):
        RepositoryConfig(owner="acme", repo=repo, kind="theme", slug="starter")


def test_plugin_slug_must_name_main_file() -> None:
    with pytest.raises(ValidationError, match="folder/file.php"):
        RepositoryConfig(owner="acme", repo="plugin", kind="plugin", slug="plugin")


def test_theme_slug_must_not_contain_separator() -> None:
    with pytest.raises(ValidationError):
        RepositoryConfig(owner="acme", repo="theme", kind="theme", slug="themes/starter")


@pytest.mark.parametrize(("kind", "slug"), [("plugin", "../x.php"), ("plugin", "./x.php"), ("theme", ".."), ("theme", ".")])
def test_slug_cannot_leave_content_directory(kind: str, slug: str) -> None:
    with pytest.raises(ValidationError, match="current or parent directory"):
        RepositoryConfig(owner="acme", repo="pkg", kind=kind, slug=slug)


def test_unknown_kind_rejected() -> None:
    with pytest.raises(ValidationError):
        RepositoryConfig(owner="acme", repo="thing", kind="widget", slug="thing")


def test_assignment_is_validated() -> None:
    repo = RepositoryConfig(owner="acme", repo="theme", kind="theme", slug="starter")

    with pytest.raises(ValidationError):
        repo.default_branch = "   "


def test_sort_key_orders_plugins_before_themes() -> None:
    theme = RepositoryConfig(owner="acme", repo="a-theme", kind="theme", slug="a-theme")
    plugin = RepositoryConfig(owner="zeta", repo="z-plugin", kind="plugin", slug="z/z.php")

    assert sorted([theme, plugin], key=lambda r: r.sort_key) == [plugin, theme]


def test_same_target() -> None:
    a = RepositoryConfig(owner="acme", repo="plugin", kind="plugin", slug="plugin/plugin.php")
    b = RepositoryConfig(owner="acme", repo="plugin", kind="plugin", slug="plugin/plugin.php", default_branch="dev")
    c = RepositoryConfig(owner="acme", repo="plugin", kind="plugin", slug="other/plugin.php")

    assert a.same_target(b)
    assert not a.same_target(c)


def test_plugin_directory() -> None:
    assert plugin_directory("hello-dolly/hello.php") == "hello-dolly"
    assert plugin_directory("hello-dolly") == "hello-dolly"
