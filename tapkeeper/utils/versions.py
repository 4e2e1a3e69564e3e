"""Version string helpers for ordering cask releases."""

import functools
import re
from typing import List, Tuple

VERSION_PATTERN = re.compile(r'^[0-9A-Za-z][0-9A-Za-z._+-]*$')


@functools.lru_cache(maxsize=512)
def version_key(version: str) -> Tuple:
    """Build a sort key for a version string.

    Numeric segments compare numerically and alphabetic segments compare
    lexically, so "0.4.10" sorts after "0.4.9". A leading "v" is ignored.
    Pre-release tags ("1.0-beta") sort before the plain release ("1.0").

    Args:
        version: Version string such as "0.4.34" or "v1.2.0-rc1"

    Returns:
        Tuple usable as a sort key
    """
    clean = version.strip()
    if clean[:1] in ('v', 'V') and clean[1:2].isdigit():
        clean = clean[1:]

    parts = []
    zeros = []
    for segment in re.findall(r'\d+|[A-Za-z]+', clean):
        if segment.isdigit():
            number = int(segment)
            if number == 0:
                zeros.append((1, 0, ''))
                continue
            parts.extend(zeros)
            parts.append((1, number, ''))
        else:
            # Alpha segments rank below any number and below "end of version"
            parts.append((-1, 0, segment.lower()))
        zeros = []
    # Trailing zeros of a numeric run are dropped so "1.0.0" == "1.0"
    # Terminator ranks above alpha tags so "1.0" > "1.0-beta"
    parts.append((0, 0, ''))
    return tuple(parts)


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as left is older, equal to or newer than right."""
    a, b = version_key(left), version_key(right)
    return (a > b) - (a < b)


def latest(versions: List[str]):
    """Return the newest version from a list, or None if it is empty."""
    if not versions:
        return None
    return max(versions, key=version_key)


def is_valid_version(version: str) -> bool:
    """Check that a version string is usable in a cask."""
    return bool(version) and bool(VERSION_PATTERN.match(version)) and any(c.isdigit() for c in version)
