"""Audit declared checksums against the artifacts they describe."""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .manifest import NO_CHECK, CaskManifest
from ..providers.artifacts import sha256_of_file

# Set up logging for this module
logger = logging.getLogger(__name__)

MATCH = 'match'
MISMATCH = 'mismatch'
SKIPPED = 'skipped'
UNAVAILABLE = 'unavailable'


class ChecksumResult(NamedTuple):
    arch: str
    source: str
    expected: Optional[str]
    actual: Optional[str]
    status: str

    @property
    def ok(self) -> bool:
        return self.status in (MATCH, SKIPPED)

    def to_dict(self) -> dict:
        return self._asdict()


def select_record(records: Iterable[CaskManifest], version: str) -> CaskManifest:
    """Pick the record published under a version.

    Raises:
        ValueError: If no record has that version, or the records sharing
            it disagree on checksums
    """
    matches = [r for r in records if r.version == version]
    if not matches:
        raise ValueError(f"No manifest record for version {version}")
    if any(r.sha256 != matches[0].sha256 for r in matches[1:]):
        raise ValueError(f"Version {version} is recorded with conflicting checksums; "
                         f"see `tapkeeper validate --history`")
    return matches[-1]


def verify_manifest(manifest: CaskManifest, fetcher, archs: Optional[List[str]] = None,
                    version: Optional[str] = None,
                    files: Optional[Dict[str, str]] = None,
                    records: Optional[Iterable[CaskManifest]] = None) -> List[ChecksumResult]:
    """Check each architecture's artifact against its declared checksum.

    Args:
        manifest: Manifest whose checksums are being audited
        fetcher: Object with a `sha256_of_url(url)` method
        archs: Architectures to check (defaults to all declared)
        version: Audit this version instead of the manifest's. Its record,
            and so its checksums, is looked up in `records`
        files: Local artifact paths by architecture, hashed instead of
            downloading
        records: Known records for the cask, oldest first

    Returns:
        One ChecksumResult per architecture

    Raises:
        ValueError: If `version` has no usable record
    """
    if version is not None and version != manifest.version:
        manifest = select_record(records or (), version)

    files = files or {}
    results = []
    for arch in archs or manifest.architectures():
        expected = manifest.checksum_for(arch)
        if arch in files:
            source = files[arch]
        else:
            source = manifest.resolve_url(arch)

        if expected == NO_CHECK:
            results.append(ChecksumResult(arch, source, expected, None, SKIPPED))
            continue

        if arch in files:
            try:
                actual = sha256_of_file(source)
            except OSError as e:
                logger.error(f"Could not read artifact {source}: {e}")
                actual = None
        else:
            actual = fetcher.sha256_of_url(source)

        if actual is None:
            status = UNAVAILABLE
        elif expected is not None and actual == expected.lower():
            status = MATCH
        else:
            status = MISMATCH
            logger.warning(f"Checksum mismatch for {manifest.token} {arch}: expected {expected}, got {actual}")
        results.append(ChecksumResult(arch, source, expected, actual, status))
    return results


def compute_checksums(manifest: CaskManifest, version: str, fetcher,
                      archs: Optional[List[str]] = None) -> Dict[str, Optional[str]]:
    """Hash the artifacts a manifest would download for a new version."""
    checksums = {}
    for arch in archs or manifest.architectures():
        url = manifest.resolve_url(arch, version)
        checksums[arch] = fetcher.sha256_of_url(url)
    return checksums


def verify_history(records: Iterable[CaskManifest], fetcher,
                   archs: Optional[List[str]] = None) -> List[Tuple[CaskManifest, List[ChecksumResult]]]:
    """Audit every distinct record, oldest first.

    Records repeated verbatim are checked once. Records that share a
    version but not checksums are each checked against their own values.
    """
    audits = []
    seen = []
    for record in records:
        if record in seen:
            continue
        seen.append(record)
        declared = record.architectures()
        wanted = [a for a in archs if a in declared] if archs else None
        if archs and not wanted:
            continue
        audits.append((record, verify_manifest(record, fetcher, archs=wanted)))
    return audits
