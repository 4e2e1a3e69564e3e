"""macOS release table and `depends_on macos:` requirements."""

import re
from typing import List, NamedTuple, Optional, Tuple

# Homebrew's release symbols, newest first
MACOS_RELEASES = {
    'tahoe': '26',
    'sequoia': '15',
    'sonoma': '14',
    'ventura': '13',
    'monterey': '12',
    'big_sur': '11',
    'catalina': '10.15',
    'mojave': '10.14',
    'high_sierra': '10.13',
    'sierra': '10.12',
    'el_capitan': '10.11',
}

COMPARATORS = ('>=', '<=', '==', '>', '<')

_REQUIREMENT_RE = re.compile(r'^\s*(?P<comparator><|>|[=<>]=)\s*:?(?P<release>[\w.]+)\s*$')


def _numeric(version: str) -> Tuple[int, ...]:
    parts = []
    for piece in version.split('.'):
        if not piece.isdigit():
            raise ValueError(f"Invalid macOS version: {version!r}")
        parts.append(int(piece))
    # 11 and 11.0 must compare equal
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def release_version(release: str) -> str:
    """Map a release symbol or dotted version to a dotted version string."""
    name = release.lstrip(':')
    if name in MACOS_RELEASES:
        return MACOS_RELEASES[name]
    if re.match(r'^\d+(\.\d+)*$', name):
        return name
    raise ValueError(f"Unknown macOS release: {release!r}")


def release_symbol(version: str) -> Optional[str]:
    """Return the release symbol for a version, if it has one."""
    target = _numeric(version)
    for symbol, number in MACOS_RELEASES.items():
        if _numeric(number) == target:
            return symbol
    return None


class MacOSRequirement(NamedTuple):
    """A comparator plus one or more releases, as in `depends_on macos:`."""
    comparator: str
    releases: List[str]

    def satisfied_by(self, os_version: str) -> bool:
        """Check whether a given macOS version satisfies the requirement."""
        current = _numeric(os_version)
        for release in self.releases:
            wanted = _numeric(release_version(release))
            # Point releases of the same major (10.15.7) count as that release
            trimmed = current[:len(wanted)] if len(current) > len(wanted) else current
            if self.comparator == '==' and trimmed == wanted:
                return True
            if self.comparator == '>=' and current >= wanted:
                return True
            if self.comparator == '>' and trimmed > wanted:
                return True
            if self.comparator == '<=' and trimmed <= wanted:
                return True
            if self.comparator == '<' and current < wanted:
                return True
        return False

    def minimum(self) -> Optional[str]:
        """Return the lowest acceptable dotted version, if bounded below."""
        if self.comparator not in ('>=', '==') or not self.releases:
            return None
        versions = [release_version(r) for r in self.releases]
        return min(versions, key=_numeric)

    def describe(self) -> str:
        names = ', '.join(f"{r} ({release_version(r)})" if r in MACOS_RELEASES else r for r in self.releases)
        if self.comparator == '==' and len(self.releases) > 1:
            return f"macOS one of {names}"
        return f"macOS {self.comparator} {names}"

    def to_ruby(self) -> str:
        if self.comparator == '==' and len(self.releases) > 1:
            return '[' + ', '.join(f':{r}' for r in self.releases) + ']'
        release = self.releases[0]
        token = f':{release}' if release in MACOS_RELEASES else release
        return f'"{self.comparator} {token}"'

    def to_api(self) -> dict:
        return {self.comparator: [release_version(r) for r in self.releases]}


def parse_requirement(value) -> MacOSRequirement:
    """Parse a `depends_on macos:` value.

    Accepts a comparator string (">= :catalina"), a bare symbol
    (":catalina", treated as ">="), or a list of symbols (matched with "==").

    Raises:
        ValueError: If the value is malformed or names an unknown release
    """
    if isinstance(value, (list, tuple)):
        releases = [str(v).lstrip(':') for v in value]
        if not releases:
            raise ValueError("Empty macOS release list")
        for release in releases:
            release_version(release)
        return MacOSRequirement('==', releases)

    text = str(value).strip()
    match = _REQUIREMENT_RE.match(text)
    if match:
        release = match.group('release')
        release_version(release)
        return MacOSRequirement(match.group('comparator'), [release])

    if re.match(r'^:?[\w.]+$', text):
        release = text.lstrip(':')
        release_version(release)
        return MacOSRequirement('>=', [release])

    raise ValueError(f"Invalid macOS requirement: {value!r}")


def requirement_from_api(data: dict) -> MacOSRequirement:
    """Rebuild a requirement from its API form, e.g. {">=": ["10.15"]}."""
    if not data:
        raise ValueError("Empty macOS requirement")
    comparator, versions = next(iter(data.items()))
    if comparator not in COMPARATORS:
        raise ValueError(f"Invalid macOS comparator: {comparator!r}")
    releases = []
    for version in versions:
        releases.append(release_symbol(version) or version)
    return MacOSRequirement(comparator, releases)
