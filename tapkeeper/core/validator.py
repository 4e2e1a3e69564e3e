"""Validation pass over cask manifest records.

Problems in the data are reported as Issue entries, never raised, so a
single run can surface everything wrong with a tap at once.
"""

import re
import logging
from typing import Dict, List, NamedTuple, Optional
from urllib.parse import urlparse

from .macos import release_version
from .manifest import ALL_ARCHITECTURES, NO_CHECK, CaskManifest, placeholders
from ..utils.versions import compare_versions, is_valid_version

# Set up logging for this module
logger = logging.getLogger(__name__)

ERROR = 'error'
WARNING = 'warning'

TOKEN_RE = re.compile(r'^[a-z0-9][a-z0-9.+-]*(@[a-z0-9.+-]+)?$')
SHA256_RE = re.compile(r'^[0-9a-f]{64}$')
URL_PLACEHOLDERS = {'version', 'arch'}
COMMAND_PLACEHOLDERS = {'appdir', 'version'}
USER_LIBRARY = '~/Library/'


class Issue(NamedTuple):
    """A single validation finding."""
    severity: str
    code: str
    message: str
    field: str = ''
    version: str = ''

    def to_dict(self) -> dict:
        return self._asdict()


class ValidationReport:
    """Collection of issues from one or more validation passes."""

    def __init__(self, issues: Optional[List[Issue]] = None):
        self.issues = list(issues or [])

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == ERROR]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def extend(self, other: 'ValidationReport') -> 'ValidationReport':
        self.issues.extend(other.issues)
        return self

    def to_dict(self) -> dict:
        return {
            'ok': self.ok,
            'issues': [i.to_dict() for i in self.issues],
            'summary': {
                'errors': len(self.errors),
                'warnings': len(self.warnings),
            },
        }

    def __len__(self):
        return len(self.issues)

    def __iter__(self):
        return iter(self.issues)


def _check_url(url: str, field: str, add, severity=ERROR):
    parsed = urlparse(url)
    if parsed.scheme != 'https' or not parsed.netloc:
        add(severity, 'insecure-url' if parsed.scheme == 'http' else 'invalid-url',
            f"{field} must be an https URL: {url}", field)


def validate_manifest(manifest: CaskManifest) -> ValidationReport:
    """Run the single-record checks against one manifest."""
    report = ValidationReport()
    version = manifest.version

    def add(severity, code, message, field=''):
        report.issues.append(Issue(severity, code, message, field, version))

    if not TOKEN_RE.match(manifest.token or ''):
        add(ERROR, 'invalid-token', f"Invalid cask token: {manifest.token!r}", 'token')

    if version != 'latest' and not is_valid_version(version):
        add(ERROR, 'invalid-version', f"Invalid version string: {version!r}", 'version')

    # Checksums
    archs = manifest.architectures()
    if not manifest.sha256:
        add(ERROR, 'missing-checksum', "No sha256 declared", 'sha256')
    for arch in archs:
        checksum = manifest.checksum_for(arch)
        if checksum is None:
            add(ERROR, 'missing-checksum', f"No sha256 for architecture {arch}", 'sha256')
        elif checksum == NO_CHECK:
            add(WARNING, 'checksum-skipped', f"Checksum verification disabled for {arch}", 'sha256')
        elif not SHA256_RE.match(checksum):
            add(ERROR, 'invalid-checksum', f"Malformed sha256 for {arch}: {checksum!r}", 'sha256')
    for arch in manifest.sha256:
        if arch != ALL_ARCHITECTURES and arch not in archs:
            add(ERROR, 'unknown-architecture', f"Checksum given for undeclared architecture {arch}", 'sha256')

    # URL template
    used = placeholders(manifest.url_template)
    unknown = sorted(set(used) - URL_PLACEHOLDERS)
    if unknown:
        add(ERROR, 'unknown-placeholder', f"URL uses unknown placeholders: {', '.join(unknown)}", 'url')
    if 'arch' in used and not manifest.arch_labels:
        add(ERROR, 'missing-arch-labels', "URL depends on {arch} but no architecture labels are declared", 'url')
    if 'version' not in used and version != 'latest':
        add(WARNING, 'unversioned-url', "URL does not depend on the version", 'url')
    if not unknown and archs:
        try:
            url = manifest.resolve_url(archs[0])
        except ValueError as e:
            add(ERROR, 'invalid-url', str(e), 'url')
        else:
            _check_url(url, 'url', add)
            if manifest.url_verified and not url.split('://', 1)[-1].startswith(manifest.url_verified):
                add(ERROR, 'unverified-url',
                    f"URL does not start with its verified prefix {manifest.url_verified!r}", 'url')

    if manifest.homepage:
        _check_url(manifest.homepage, 'homepage', add, severity=WARNING)
    else:
        add(WARNING, 'missing-homepage', "No homepage declared", 'homepage')

    # OS constraint
    if manifest.depends_on_macos:
        for release in manifest.depends_on_macos.releases:
            try:
                release_version(release)
            except ValueError as e:
                add(ERROR, 'unknown-macos-release', str(e), 'depends_on')

    # Conflicts
    if manifest.token in manifest.conflicts_with:
        add(ERROR, 'self-conflict', f"Cask {manifest.token} declares a conflict with itself", 'conflicts_with')
    seen = set()
    for other in manifest.conflicts_with:
        if other in seen:
            add(WARNING, 'duplicate-conflict', f"Conflict listed more than once: {other}", 'conflicts_with')
        seen.add(other)
        if not TOKEN_RE.match(other):
            add(ERROR, 'invalid-token', f"Invalid conflicting cask token: {other!r}", 'conflicts_with')

    # Livecheck
    if manifest.livecheck:
        rule = manifest.livecheck
        _check_url(rule.url, 'livecheck url', add)
        try:
            pattern = rule.compile()
            if pattern.groups < 1:
                add(WARNING, 'livecheck-no-group', "Livecheck regex has no capture group", 'livecheck')
        except (re.error, ValueError) as e:
            add(ERROR, 'invalid-livecheck-regex', f"Livecheck regex does not compile: {e}", 'livecheck')

    # Install target
    if not manifest.app:
        add(WARNING, 'missing-app', "No app artifact declared", 'app')
    elif not manifest.app.endswith('.app') or '/' in manifest.app:
        add(ERROR, 'invalid-app', f"App artifact must be a bundle name ending in .app: {manifest.app!r}", 'app')

    for command in manifest.postflight:
        for arg in (command.executable,) + tuple(command.args):
            extra = sorted(set(placeholders(arg)) - COMMAND_PLACEHOLDERS)
            if extra:
                add(WARNING, 'unknown-placeholder',
                    f"Postflight command uses unknown placeholders: {', '.join(extra)}", 'postflight')

    # Zap paths
    seen = set()
    for path in manifest.zap_trash:
        if path in seen:
            add(ERROR, 'duplicate-zap-path', f"Zap path listed more than once: {path}", 'zap')
        seen.add(path)
        if not path.startswith(USER_LIBRARY) or '..' in path.split('/'):
            add(ERROR, 'zap-outside-library', f"Zap path is not under {USER_LIBRARY}: {path}", 'zap')

    logger.debug(f"Validated {manifest.token} {version}: {len(report.errors)} errors, {len(report.warnings)} warnings")
    return report


def validate_history(records: List[CaskManifest]) -> ValidationReport:
    """Run the cross-record checks over an ordered list of manifests.

    Records that share a version must agree on checksums; disagreement is
    an error because it means two different artifacts were published under
    one version. The report does not decide which record is right.
    """
    report = ValidationReport()
    by_version: Dict[str, CaskManifest] = {}
    by_checksum: Dict[str, str] = {}
    previous = None

    for record in records:
        version = record.version
        first = by_version.get(version)
        if first is not None:
            if first.sha256 != record.sha256:
                report.issues.append(Issue(
                    ERROR, 'version-checksum-mismatch',
                    f"Version {version} is declared with different checksums "
                    f"({_describe(first.sha256)} vs {_describe(record.sha256)})",
                    'sha256', version))
            for field in ('homepage', 'url_template'):
                if getattr(first, field) != getattr(record, field):
                    report.issues.append(Issue(
                        WARNING, 'version-metadata-drift',
                        f"Version {version} is declared with different {field} values: "
                        f"{getattr(first, field)!r} vs {getattr(record, field)!r}",
                        field, version))
        else:
            by_version[version] = record

        if previous is not None and previous.version != version:
            if compare_versions(version, previous.version) < 0:
                report.issues.append(Issue(
                    WARNING, 'version-regression',
                    f"Version {version} follows newer version {previous.version}",
                    'version', version))

        for arch, checksum in record.sha256.items():
            if checksum == NO_CHECK:
                continue
            owner = by_checksum.setdefault(checksum, version)
            if owner != version:
                report.issues.append(Issue(
                    WARNING, 'checksum-reuse',
                    f"Checksum for {arch} in {version} was already used by {owner}",
                    'sha256', version))
        previous = record

    if report.issues:
        logger.info(f"History check found {len(report.errors)} errors, {len(report.warnings)} warnings")
    return report


def _describe(checksums: Dict[str, str]) -> str:
    return ', '.join(f"{arch}={value[:12]}" for arch, value in checksums.items())


def validate_all(records: List[CaskManifest]) -> ValidationReport:
    """Validate every record and then the history as a whole."""
    report = ValidationReport()
    for record in records:
        report.extend(validate_manifest(record))
    return report.extend(validate_history(records))
