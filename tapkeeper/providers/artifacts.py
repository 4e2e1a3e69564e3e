"""Download release artifacts and compute their SHA-256 digests."""

import hashlib
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Optional

from ..utils.ui import ProgressIndicator

# Set up logging for this module
logger = logging.getLogger(__name__)


def sha256_of_file(path, chunk_size: int = 1024 * 1024) -> str:
    """Hash a local file.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(Path(path), 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


class ArtifactFetcher:
    """Streams artifacts over HTTPS into a hash without keeping them."""

    CHUNK_SIZE = 1024 * 1024
    TIMEOUT = 60
    USER_AGENT = 'tapkeeper'

    def __init__(self, timeout: Optional[int] = None, show_progress: bool = False):
        self.timeout = timeout or self.TIMEOUT
        self.show_progress = show_progress

    def _open(self, url: str):
        request = urllib.request.Request(url, headers={'User-Agent': self.USER_AGENT})
        return urllib.request.urlopen(request, timeout=self.timeout)

    def sha256_of_url(self, url: str) -> Optional[str]:
        """Download a URL and return the SHA-256 of its body.

        Returns:
            Hex digest, or None if the download failed
        """
        digest = hashlib.sha256()
        progress = None
        received = 0
        try:
            logger.info(f"Fetching {url}")
            with self._open(url) as response:
                length = response.headers.get('Content-Length') if response.headers else None
                total = int(length) if length and length.isdigit() else None
                if self.show_progress:
                    name = url.rsplit('/', 1)[-1]
                    progress = ProgressIndicator(f"Downloading {name}", total=total)
                    progress.start()
                while True:
                    chunk = response.read(self.CHUNK_SIZE)
                    if not chunk:
                        break
                    digest.update(chunk)
                    received += len(chunk)
                    if progress:
                        progress.update(current=received if total else None)
            if progress:
                progress.stop(f"Downloaded {url.rsplit('/', 1)[-1]} ({received} bytes)")
            logger.debug(f"Hashed {received} bytes from {url}")
            return digest.hexdigest()
        except urllib.error.URLError as e:
            logger.error(f"Network error fetching {url}: {e}")
        except OSError as e:
            logger.error(f"I/O error fetching {url}: {e}")
        if progress:
            progress.stop(f"Download failed: {url}")
        return None
