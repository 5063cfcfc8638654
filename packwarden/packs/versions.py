"""
Semantic version handling for release tags.
"""

import re
from typing import Iterable, Optional, Tuple

from .models import Release

_SEMVER_PATTERN = re.compile(
    r"^v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)


def parse_semver(tag: str) -> Optional[Tuple]:
    """
    Parse a release tag such as ``v1.14.0`` or ``1.15.0-rc1`` into a sortable key.

    Returns None when the tag is not a semantic version. A pre-release sorts
    before the plain release with the same numbers.
    """
    match = _SEMVER_PATTERN.match(tag.strip())
    if not match:
        return None

    numbers = tuple(int(match.group(part) or 0) for part in ("major", "minor", "patch"))
    pre = match.group("pre")
    if pre is None:
        return numbers + (1, ())

    identifiers = tuple(
        (0, int(token), "") if token.isdigit() else (1, 0, token)
        for token in pre.split(".")
    )
    return numbers + (0, identifiers)


def is_newer(candidate: Release, baseline: Release) -> bool:
    """True when candidate's tag is a strictly higher semantic version."""
    candidate_key = parse_semver(candidate.name)
    baseline_key = parse_semver(baseline.name)
    if candidate_key is None or baseline_key is None:
        return False
    return candidate_key > baseline_key


def is_new_release_available(current: Release, available: Iterable[Release]) -> bool:
    """True when any release in ``available`` is newer than ``current``."""
    return any(is_newer(release, current) for release in available)
