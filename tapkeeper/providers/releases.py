"""Livecheck client: discover the newest upstream release of a cask."""

import hashlib
import json
import time
import urllib.error
import urllib.request
import logging
from pathlib import Path
from typing import List, NamedTuple, Optional

from ..core.manifest import CaskManifest, LivecheckRule, fill_placeholders
from ..utils.versions import compare_versions, latest

# Set up logging for this module
logger = logging.getLogger(__name__)


class LivecheckResult(NamedTuple):
    token: str
    current: str
    latest: Optional[str]
    outdated: bool
    url: str = ''

    def to_dict(self) -> dict:
        return self._asdict()


class ReleaseChecker:
    """Fetches livecheck pages with a small on-disk cache."""

    CACHE_DIR = Path.home() / ".cache" / "tapkeeper" / "livecheck"
    CACHE_EXPIRY_HOURS = 1
    TIMEOUT = 30
    USER_AGENT = 'tapkeeper'

    def __init__(self, cache_dir: Optional[Path] = None, timeout: Optional[int] = None):
        self.cache_dir = Path(cache_dir) if cache_dir else self.CACHE_DIR
        self.timeout = timeout or self.TIMEOUT

    def _cache_file(self, url: str) -> Path:
        key = hashlib.sha256(url.encode('utf-8')).hexdigest()[:32]
        return self.cache_dir / f"{key}.json"

    def _is_cache_valid(self, cache_file: Path) -> bool:
        """Check if cache exists and is not stale."""
        if not cache_file.exists():
            return False
        cache_age_hours = (time.time() - cache_file.stat().st_mtime) / 3600
        return cache_age_hours < self.CACHE_EXPIRY_HOURS

    def _load_cache(self, url: str, allow_stale: bool = False) -> Optional[str]:
        cache_file = self._cache_file(url)
        if not cache_file.exists() or (not allow_stale and not self._is_cache_valid(cache_file)):
            return None
        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            logger.debug(f"Loaded livecheck page for {url} from cache")
            return data.get('body')
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in cache file: {e}")
            return None
        except IOError as e:
            logger.warning(f"Could not read cache file: {e}")
            return None

    def _save_cache(self, url: str, body: str):
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(self._cache_file(url), 'w', encoding='utf-8') as f:
                json.dump({'url': url, 'fetched_at': time.time(), 'body': body}, f)
        except IOError as e:
            logger.warning(f"Could not save cache: {e}")

    def _fetch(self, url: str) -> Optional[str]:
        try:
            logger.info(f"Fetching livecheck page {url}")
            request = urllib.request.Request(url, headers={'User-Agent': self.USER_AGENT})
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.read().decode('utf-8', errors='replace')
        except urllib.error.URLError as e:
            logger.error(f"Network error fetching livecheck page {url}: {e}")
        except OSError as e:
            logger.error(f"I/O error fetching livecheck page {url}: {e}")
        return None

    def fetch_page(self, url: str, force_refresh: bool = False) -> Optional[str]:
        """Return the page body, from cache when fresh.

        Falls back to a stale cached copy if the network fetch fails.
        """
        if not force_refresh:
            cached = self._load_cache(url)
            if cached is not None:
                return cached

        body = self._fetch(url)
        if body is not None:
            self._save_cache(url, body)
            return body

        stale = self._load_cache(url, allow_stale=True)
        if stale is not None:
            logger.info(f"Using stale livecheck cache for {url}")
        return stale

    def find_versions(self, rule: LivecheckRule, page: str) -> List[str]:
        """Extract every version the rule's regex matches in a page."""
        pattern = rule.compile()
        versions = []
        for match in pattern.finditer(page):
            value = match.group(1) if pattern.groups else match.group(0)
            if value and value not in versions:
                versions.append(value)
        return versions

    def latest_version(self, rule: LivecheckRule, force_refresh: bool = False,
                       version: str = '') -> Optional[str]:
        url = fill_placeholders(rule.url, version=version) if '{' in rule.url else rule.url
        page = self.fetch_page(url, force_refresh=force_refresh)
        if page is None:
            return None
        versions = self.find_versions(rule, page)
        logger.debug(f"Livecheck matched versions: {versions}")
        return latest(versions)

    def check(self, manifest: CaskManifest, force_refresh: bool = False) -> LivecheckResult:
        """Compare a manifest's version with the newest upstream one."""
        if manifest.livecheck is None:
            logger.warning(f"Cask {manifest.token} has no livecheck rule")
            return LivecheckResult(manifest.token, manifest.version, None, False)

        newest = self.latest_version(manifest.livecheck, force_refresh=force_refresh,
                                     version=manifest.version)
        outdated = newest is not None and compare_versions(newest, manifest.version) > 0
        return LivecheckResult(manifest.token, manifest.version, newest, outdated, manifest.livecheck.url)

    def clear_cache(self):
        """Remove all cached livecheck pages."""
        if not self.cache_dir.exists():
            return
        for cache_file in self.cache_dir.glob('*.json'):
            cache_file.unlink()
        logger.info("Livecheck cache cleared")
