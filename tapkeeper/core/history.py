"""Append-only history of superseded cask manifests."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .manifest import CaskManifest

# Set up logging for this module
logger = logging.getLogger(__name__)


class ManifestHistory:
    """Ordered record of every manifest published for one cask, oldest first.

    Records are only ever appended. A new version supersedes the previous
    latest record without removing it.
    """

    def __init__(self, token: str, records: Optional[List[CaskManifest]] = None):
        self.token = token
        self.records: List[CaskManifest] = []
        for record in records or []:
            self.add(record)

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    @property
    def latest(self) -> Optional[CaskManifest]:
        return self.records[-1] if self.records else None

    def versions(self) -> List[str]:
        """Versions in publication order, duplicates included."""
        return [r.version for r in self.records]

    def by_version(self, version: str) -> List[CaskManifest]:
        return [r for r in self.records if r.version == version]

    def add(self, record: CaskManifest) -> CaskManifest:
        """Append a record.

        Raises:
            ValueError: If the record belongs to a different cask
        """
        if record.token != self.token:
            raise ValueError(f"Record for {record.token!r} cannot be added to history of {self.token!r}")
        self.records.append(record)
        return record

    def contains(self, record: CaskManifest) -> bool:
        return record in self.records

    def supersede(self, version: str, sha256: Dict[str, str], **metadata) -> CaskManifest:
        """Create and append the successor of the latest record.

        Args:
            version: New version string
            sha256: Checksums for the new version's artifacts
            **metadata: Other manifest fields to correct at the same time

        Returns:
            The new latest record

        Raises:
            ValueError: If there is no record to supersede
        """
        current = self.latest
        if current is None:
            raise ValueError(f"No manifest for {self.token!r} to supersede")
        successor = current._replace(version=version, sha256=dict(sha256), **metadata)
        logger.info(f"Superseding {self.token} {current.version} with {version}")
        return self.add(successor)

    def to_list(self) -> List[dict]:
        return [r.to_api_dict() for r in self.records]


def history_path(tap_dir, token: str) -> Path:
    return Path(tap_dir) / 'history' / f'{token}.json'


def load_history(path, token: str) -> ManifestHistory:
    """Load a history file. A missing file is an empty history.

    Raises:
        ValueError: If the file exists but is not valid history JSON
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No history file at {path}")
        return ManifestHistory(token)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in history file {path}: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"History file {path} must contain a list of records")

    try:
        records = [CaskManifest.from_api_dict(item) for item in data]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed record in history file {path}: {e}") from e

    logger.debug(f"Loaded {len(records)} records from {path}")
    return ManifestHistory(token, records)


def save_history(history: ManifestHistory, path) -> Path:
    """Write a history file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(history.to_list(), f, indent=2)
        f.write('\n')
    logger.debug(f"Saved {len(history)} records to {path}")
    return path
