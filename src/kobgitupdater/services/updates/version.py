"""Version comparison and the update decision rules."""

import re

from kobgitupdater.models.update import (
    BRANCH_VERSION_PREFIX,
    NoUpdate,
    ResolvedUpdate,
    UpdateAvailable,
    UpdateDecision,
)

# Ranks of the special forms understood by PHP's version_compare, matched by
# prefix in this order. A number ranks as "#".
SPECIAL_FORMS = (
    ("dev", 0),
    ("alpha", 1),
    ("a", 1),
    ("beta", 2),
    ("b", 2),
    ("RC", 3),
    ("rc", 3),
    ("#", 4),
    ("pl", 5),
    ("p", 5),
)
UNKNOWN_FORM = -6
NUMBER_FORM = "#"

_SEPARATORS = re.compile(r"[-_+]")
_BOUNDARY = re.compile(r"(?<=\d)(?=[^\d.])|(?<=[^\d.])(?=\d)")


def _segments(version: str) -> list[str]:
    version = version.strip()
    if version[:1] in ("v", "V"):
        version = version[1:]
    version = _BOUNDARY.sub(".", _SEPARATORS.sub(".", version))
    return [s for s in version.split(".") if s]


def _form_rank(segment: str) -> int:
    for form, rank in SPECIAL_FORMS:
        if segment.startswith(form):
            return rank
    return UNKNOWN_FORM


def _compare_segment(a: str, b: str) -> int:
    if a.isdigit() and b.isdigit():
        x, y = int(a), int(b)
        return (x > y) - (x < y)

    x, y = _form_rank(NUMBER_FORM if a.isdigit() else a), _form_rank(NUMBER_FORM if b.isdigit() else b)
    if x == y == UNKNOWN_FORM:
        return (a > b) - (a < b)
    return (x > y) - (x < y)


def compare_versions(a: str, b: str) -> int:
    """
    Compare two version strings the way PHP's ``version_compare`` does.

    ``-``, ``_`` and ``+`` separate segments like ``.``, and a switch between
    digits and letters starts a new segment, so ``1.0.0-beta2`` reads as
    ``1 0 0 beta 2``. Numbers compare numerically and rank above ``dev``,
    ``alpha``, ``beta`` and ``RC`` but below ``pl``; other words compare
    lexically below all of them.

    A missing trailing segment counts as ``0`` against a number, so ``1.0``
    equals ``1.0.0``, and as a number against a word, so ``1.0.0-beta`` is
    lower than ``1.0.0``.

    Returns:
        -1, 0 or 1 as ``a`` is lower than, equal to or greater than ``b``
    """
    left, right = _segments(a), _segments(b)

    for index in range(max(len(left), len(right))):
        x = left[index] if index < len(left) else None
        y = right[index] if index < len(right) else None
        if x is None:
            x = "0" if y.isdigit() else NUMBER_FORM  # type: ignore[union-attr]
        if y is None:
            y = "0" if x.isdigit() else NUMBER_FORM
        result = _compare_segment(x, y)
        if result:
            return result
    return 0


def decide(installed_version: str | None, resolved: ResolvedUpdate) -> UpdateDecision:
    """
    Decide whether ``resolved`` should be offered over what is installed.

    Args:
        installed_version: Version header of the installed package, empty or None if unknown
        resolved: Latest artifact of the repository

    Returns:
        UpdateAvailable or NoUpdate
    """
    installed = (installed_version or "").strip()

    if not installed:
        return UpdateAvailable(version=resolved.version, resolved=resolved)

    if not resolved.is_branch:
        if compare_versions(resolved.version, installed) > 0:
            return UpdateAvailable(version=resolved.version, resolved=resolved)
        return NoUpdate(reason=f"Installed version {installed} is up to date with release {resolved.version}")

    if not installed.startswith(BRANCH_VERSION_PREFIX):
        # A hand-set header version on a branch-only repository would otherwise
        # show an update on every check.
        return NoUpdate(
            reason=f"Installed version {installed} looks stable and the repository has no releases"
        )

    if installed != resolved.version:
        return UpdateAvailable(version=resolved.version, resolved=resolved)
    return NoUpdate(reason=f"Installed version {installed} matches branch version")
