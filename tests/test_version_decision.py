"""Tests for version comparison and the update decision."""

import pytest

from kobgitupdater.models import NoUpdate, ResolvedUpdate, UpdateAvailable, UpdateSource
from kobgitupdater.services.updates import compare_versions, decide


def release(version: str) -> ResolvedUpdate:
    return ResolvedUpdate(
        version=version,
        download_url=f"https://api.github.com/repos/acme/plugin/zipball/v{version}",
        source=UpdateSource.RELEASE,
        ref=f"v{version}",
    )


def branch(name: str) -> ResolvedUpdate:
    return ResolvedUpdate(
        version=f"dev-{name}",
        download_url=f"https://api.github.com/repos/acme/plugin/zipball/{name}",
        source=UpdateSource.BRANCH,
        ref=name,
    )


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("1.0.0", "1.0.0", 0),
        ("1.0", "1.0.0", 0),
        ("v1.2.0", "1.2", 0),
        ("1.10.0", "1.9.9", 1),
        ("2.0.0", "10.0.0", -1),
        ("1.0.0", "1.0.0-beta", 1),
        ("1.0.0-alpha", "1.0.0-beta", -1),
        ("1.0.0-beta2", "1.0.0-beta10", -1),
        ("1.0.0-RC1", "1.0.0", -1),
        ("1.0.0-pl1", "1.0.0", 1),
        ("1.0.0_rc1", "1.0.0-rc.1", 0),
        ("dev-main", "0.1", -1),
        ("1.0.1", "1.0", 1),
    ],
)
def test_compare_versions(a: str, b: str, expected: int) -> None:
    assert compare_versions(a, b) == expected


def test_nothing_installed_always_offers() -> None:
    decision = decide("", release("2.0.0"))

    assert isinstance(decision, UpdateAvailable)
    assert decision.version == "2.0.0"


def test_none_installed_version_offers() -> None:
    assert isinstance(decide(None, branch("main")), UpdateAvailable)


def test_same_release_is_not_offered() -> None:
    assert isinstance(decide("1.0.0", release("1.0.0")), NoUpdate)


def test_newer_release_is_offered() -> None:
    decision = decide("1.0.0", release("1.1.0"))

    assert isinstance(decision, UpdateAvailable)
    assert decision.resolved.ref == "v1.1.0"


def test_older_release_is_not_offered() -> None:
    assert isinstance(decide("2.0.0", release("1.9.0")), NoUpdate)


def test_stable_install_is_not_offered_branch_build() -> None:
    assert isinstance(decide("0.1.0", branch("main")), NoUpdate)


def test_branch_install_follows_branch_change() -> None:
    decision = decide("dev-main", branch("develop"))

    assert isinstance(decision, UpdateAvailable)
    assert decision.version == "dev-develop"


def test_same_branch_is_not_offered() -> None:
    assert isinstance(decide("dev-main", branch("main")), NoUpdate)


def test_prerelease_install_is_offered_final_release() -> None:
    decision = decide("1.0.0-beta", release("1.0.0"))

    assert isinstance(decision, UpdateAvailable)
    assert decision.version == "1.0.0"


def test_branch_install_is_offered_first_release() -> None:
    assert isinstance(decide("dev-main", release("1.0.0")), UpdateAvailable)
