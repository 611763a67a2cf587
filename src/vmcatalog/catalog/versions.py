"""
Version ordering for image versions.

Image versions look like ``17763.2.190208`` or ``1.0.20240101-beta``. They
are compared segment by segment, numeric segments as numbers, so that
``17763.10.1`` is newer than ``17763.9.1``.
"""

import re
from functools import cmp_to_key
from typing import Iterable, List, Tuple

LATEST = "latest"

_SEGMENT_SPLIT = re.compile(r'[.\-]')


def version_key(version: str) -> Tuple[Tuple[int, int, str], ...]:
    """
    Sort key for a version string.

    Numeric segments rank above textual ones at the same position, so a
    plain release sorts above a tagged build of the same number.
    """
    key = []
    for segment in _SEGMENT_SPLIT.split(version):
        if segment.isdigit():
            key.append((1, int(segment), ''))
        else:
            key.append((0, 0, segment.lower()))
    return tuple(key)


def compare_versions(left: str, right: str) -> int:
    """Three-way comparison: negative if left is older than right."""
    left_key, right_key = version_key(left), version_key(right)
    return (left_key > right_key) - (left_key < right_key)


def sort_versions_desc(versions: Iterable[str]) -> List[str]:
    """
    Sort versions newest first.

    ``latest`` always leads. Duplicates are kept as delivered.
    """
    def _cmp(left: str, right: str) -> int:
        if left == LATEST and right != LATEST:
            return -1
        if right == LATEST and left != LATEST:
            return 1
        return compare_versions(right, left)

    return sorted(versions, key=cmp_to_key(_cmp))


def newest_version(versions: Iterable[str]) -> str:
    """
    Highest concrete version, ignoring ``latest``.

    Raises:
        ValueError: If there is none
    """
    concrete = [version for version in versions if version != LATEST]
    if not concrete:
        raise ValueError("No concrete versions available")
    return sort_versions_desc(concrete)[0]
