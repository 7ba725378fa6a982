"""
Version ordering.

Strict semantic versions are ordered by semver 2.0.0 precedence. Anything else
falls back to plain string comparison, which is known to be wrong for
multi-digit components ("10.0" sorts below "9.0"); callers get exactly that
behaviour.
"""

from __future__ import annotations

import re
from typing import Tuple, Union

# semver.org 2.0.0 grammar
SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

PrereleaseKey = Tuple[Tuple[int, Union[int, str]], ...]
SemverKey = Tuple[int, int, int, int, PrereleaseKey]


def _identifier_key(identifier: str) -> tuple[int, int | str]:
    # Numeric identifiers sort below alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier))
    return (1, identifier)


def parse_semver(value: str) -> SemverKey | None:
    """
    Parse a strict semantic version into a precedence key.

    A release outranks any of its pre-releases; pre-release identifiers are
    compared left to right and a shorter identifier list sorts lower when all
    preceding identifiers are equal. Build metadata is ignored.

    Args:
        value: Version string (e.g., "1.2.3", "1.0.0-rc.1+build.5")

    Returns:
        Tuple key ordered by semver precedence, or None if not semver
    """
    if not value:
        return None
    match = SEMVER_RE.match(value.strip())
    if not match:
        return None

    major, minor, patch, prerelease = match.group(1, 2, 3, 4)
    if prerelease is None:
        return (int(major), int(minor), int(patch), 1, ())
    ids = tuple(_identifier_key(part) for part in prerelease.split("."))
    return (int(major), int(minor), int(patch), 0, ids)


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    key1 = parse_semver(v1)
    key2 = parse_semver(v2)

    if key1 is not None and key2 is not None:
        if key1 < key2:
            return -1
        elif key1 > key2:
            return 1
        else:
            return 0

    # Fallback to string comparison
    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    else:
        return 0


def is_newer(current: str, latest: str) -> bool:
    """Return True if ``latest`` is strictly newer than ``current``."""
    return compare_versions(current, latest) < 0
