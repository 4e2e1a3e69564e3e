import io
import shutil
from pathlib import Path

import pytest

from tapkeeper.core.caskfile import load_cask

REPO_ROOT = Path(__file__).resolve().parent.parent
CASK_PATH = REPO_ROOT / 'Casks' / 'logparser.rb'
HISTORY_PATH = REPO_ROOT / 'history' / 'logparser.json'

ARM_SHA = '7f53c49070c59f7ac0cb53a08b3bfdcc1627bd6e7dcd1a75ee1da2062226c050'
INTEL_SHA = '9be6fbe8d00b91884be328380e621efa9523d3eaaf1d2458db5c5da78f1a61b5'


@pytest.fixture
def manifest():
    return load_cask(CASK_PATH)


@pytest.fixture
def tap_dir(tmp_path):
    """A writable copy of the tap."""
    (tmp_path / 'Casks').mkdir()
    shutil.copy(CASK_PATH, tmp_path / 'Casks' / 'logparser.rb')
    (tmp_path / 'history').mkdir()
    shutil.copy(HISTORY_PATH, tmp_path / 'history' / 'logparser.json')
    return tmp_path


class FakeResponse(io.BytesIO):
    """Minimal stand-in for the object urlopen returns."""

    def __init__(self, body: bytes):
        super().__init__(body)
        self.headers = {'Content-Length': str(len(body))}


class FakeFetcher:
    """Fetcher returning canned digests per URL."""

    def __init__(self, digests):
        self.digests = digests
        self.requested = []

    def sha256_of_url(self, url):
        self.requested.append(url)
        return self.digests.get(url)
