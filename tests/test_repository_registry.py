"""Tests for the repository registry."""

import json
from pathlib import Path

import httpx
import pytest

from kobgitupdater.exceptions import ResourceConflictError, ResourceNotFoundError, ValidationError
from kobgitupdater.models import PackageKind, RepositoryConfig
from kobgitupdater.services.github import GitHubApiClient
from kobgitupdater.services.registry import RepositoryRegistry


def github(repositories: dict[str, dict]) -> GitHubApiClient:
    def handler(request: httpx.Request) -> httpx.Response:
        key = request.url.path.removeprefix("/repos/")
        if key in repositories:
            return httpx.Response(200, json=repositories[key])
        return httpx.Response(404, json={"message": "Not Found"})

    return GitHubApiClient(transport=httpx.MockTransport(handler))


def make_registry(tmp_path: Path, repositories: dict[str, dict] | None = None) -> RepositoryRegistry:
    return RepositoryRegistry(tmp_path / "repositories.json", github(repositories or {}))


def test_add_fills_details_from_github(tmp_path: Path) -> None:
    registry = make_registry(tmp_path, {"acme/plugin": {"default_branch": "trunk", "private": True}})

    repo = registry.add("acme", "plugin", "plugin", "plugin/plugin.php")

    assert repo.default_branch == "trunk"
    assert repo.is_private
    assert registry.get("acme/plugin") == repo


def test_add_persists_to_disk(tmp_path: Path) -> None:
    registry = make_registry(tmp_path, {"acme/starter": {"default_branch": "main"}})
    registry.add("acme", "starter", PackageKind.THEME, "starter")

    data = json.loads((tmp_path / "repositories.json").read_text(encoding="utf-8"))

    assert data["repositories"][0]["owner"] == "acme"
    assert data["repositories"][0]["kind"] == "theme"

    reopened = make_registry(tmp_path)
    assert [r.key for r in reopened.list_all()] == ["acme/starter"]


def test_add_rejects_duplicates(tmp_path: Path) -> None:
    registry = make_registry(tmp_path, {"acme/plugin": {}})
    registry.add("acme", "plugin", "plugin", "plugin/plugin.php")

    with pytest.raises(ResourceConflictError):
        registry.add("acme", "plugin", "plugin", "plugin/plugin.php")


def test_add_rejects_invalid_input(tmp_path: Path) -> None:
    registry = make_registry(tmp_path)

    with pytest.raises(ValidationError, match="Invalid repository owner format"):
        registry.add("-acme", "plugin", "plugin", "plugin/plugin.php")


def test_add_rejects_repository_github_cannot_see(tmp_path: Path) -> None:
    registry = make_registry(tmp_path)

    with pytest.raises(ValidationError) as exc_info:
        registry.add("acme", "secret", "plugin", "secret/secret.php")

    assert exc_info.value.status_code == 404
    assert registry.list_all() == []


def test_get_by_kind_and_ordering(tmp_path: Path) -> None:
    registry = make_registry(tmp_path)
    registry.persist(RepositoryConfig(owner="zeta", repo="theme", kind="theme", slug="zeta"))
    registry.persist(RepositoryConfig(owner="beta", repo="plugin", kind="plugin", slug="beta/beta.php"))
    registry.persist(RepositoryConfig(owner="alpha", repo="plugin", kind="plugin", slug="alpha/alpha.php"))

    assert [r.key for r in registry.list_all()] == ["alpha/plugin", "beta/plugin", "zeta/theme"]
    assert [r.key for r in registry.get_by_kind("theme")] == ["zeta/theme"]


def test_update_and_remove(tmp_path: Path) -> None:
    registry = make_registry(tmp_path)
    registry.persist(RepositoryConfig(owner="acme", repo="plugin", kind="plugin", slug="plugin/plugin.php"))

    updated = registry.update("acme/plugin", slug="renamed/renamed.php", default_branch="develop")
    assert updated.slug == "renamed/renamed.php"
    assert updated.default_branch == "develop"

    with pytest.raises(ValidationError):
        registry.update("acme/plugin", slug="not-a-plugin-file")

    registry.remove("acme/plugin")
    assert registry.get("acme/plugin") is None

    with pytest.raises(ResourceNotFoundError):
        registry.remove("acme/plugin")


def test_set_latest_version(tmp_path: Path) -> None:
    registry = make_registry(tmp_path)
    registry.persist(RepositoryConfig(owner="acme", repo="starter", kind="theme", slug="starter"))

    registry.set_latest_version("acme/starter", "1.4.0")
    registry.reload()

    assert registry.get("acme/starter").latest_known_version == "1.4.0"


def test_refresh_repository_info(tmp_path: Path) -> None:
    registry = make_registry(tmp_path, {"acme/starter": {"default_branch": "develop", "private": True}})
    registry.persist(RepositoryConfig(owner="acme", repo="starter", kind="theme", slug="starter"))

    repo = registry.refresh_repository_info("acme/starter")

    assert repo.default_branch == "develop"
    assert repo.is_private


def test_malformed_entries_are_skipped(tmp_path: Path) -> None:
    registry_file = tmp_path / "repositories.json"
    registry_file.write_text(
        json.dumps(
            {
                "repositories": [
                    {"owner": "acme", "repo": "ok", "kind": "theme", "slug": "ok"},
                    {"owner": "acme", "repo": "broken", "kind": "plugin", "slug": "broken"},
                    {"owner": "acme"},
                ]
            }
        ),
        encoding="utf-8",
    )

    registry = RepositoryRegistry(registry_file)

    assert [r.key for r in registry.load_all()] == ["acme/ok"]


def test_unreadable_file_is_never_overwritten(tmp_path: Path) -> None:
    registry_file = tmp_path / "repositories.json"
    registry_file.write_text("{not json", encoding="utf-8")
    registry = RepositoryRegistry(registry_file)

    assert registry.list_all() == []
    with pytest.raises(ResourceConflictError):
        registry.persist(RepositoryConfig(owner="acme", repo="new", kind="theme", slug="new"))

    assert registry_file.read_text(encoding="utf-8") == "{not json"
    assert registry.list_all() == []


def test_entries_that_are_not_objects_do_not_hide_valid_ones(tmp_path: Path) -> None:
    registry_file = tmp_path / "repositories.json"
    registry_file.write_text(
        json.dumps({"repositories": [{"owner": "acme", "repo": "ok", "kind": "theme", "slug": "ok"}, "garbage"]}),
        encoding="utf-8",
    )
    registry = RepositoryRegistry(registry_file)

    assert [r.key for r in registry.list_all()] == ["acme/ok"]

    registry.persist(RepositoryConfig(owner="acme", repo="new", kind="theme", slug="new"))

    stored = json.loads(registry_file.read_text(encoding="utf-8"))["repositories"]
    assert [e["repo"] for e in stored if isinstance(e, dict)] == ["new", "ok"]
    assert "garbage" in stored


def test_skipped_entries_survive_a_save(tmp_path: Path) -> None:
    legacy = {"owner": "acme", "repo": "legacy", "kind": "theme", "slug": "legacy", "branch": "master"}
    registry_file = tmp_path / "repositories.json"
    registry_file.write_text(
        json.dumps({"repositories": [{"owner": "acme", "repo": "ok", "kind": "theme", "slug": "ok"}, legacy]}),
        encoding="utf-8",
    )
    registry = RepositoryRegistry(registry_file)

    assert [r.key for r in registry.list_all()] == ["acme/ok"]

    registry.persist(RepositoryConfig(owner="acme", repo="new", kind="theme", slug="new"))

    stored = json.loads(registry_file.read_text(encoding="utf-8"))["repositories"]
    assert [e["repo"] for e in stored] == ["new", "ok", "legacy"]
    assert stored[-1] == legacy


def test_bare_list_file_is_accepted(tmp_path: Path) -> None:
    registry_file = tmp_path / "repositories.json"
    registry_file.write_text(
        json.dumps([{"owner": "acme", "repo": "ok", "kind": "theme", "slug": "ok"}, "garbage"]), encoding="utf-8"
    )

    assert [r.key for r in RepositoryRegistry(registry_file).list_all()] == ["acme/ok"]
