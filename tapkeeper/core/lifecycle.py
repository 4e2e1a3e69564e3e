"""Describe the side effects a cask declares for install and zap.

Nothing here touches the system: the package manager runtime performs
these operations. The functions only expand them for review.
"""

import glob
import os
import logging
from typing import List, NamedTuple

from .manifest import CaskManifest

# Set up logging for this module
logger = logging.getLogger(__name__)

DEFAULT_APPDIR = '/Applications'


class ZapTarget(NamedTuple):
    """One zap entry and the paths it currently matches."""
    pattern: str
    path: str
    matches: List[str]


def install_target(manifest: CaskManifest, appdir: str = DEFAULT_APPDIR) -> str:
    """Full path the app bundle is installed to."""
    return os.path.join(appdir, manifest.app)


def postflight_commands(manifest: CaskManifest, appdir: str = DEFAULT_APPDIR) -> List[List[str]]:
    """Expand each postflight system_command into an argument vector."""
    commands = []
    for command in manifest.postflight:
        argv = command.argv(appdir=appdir.rstrip('/') or '/', version=manifest.version)
        logger.debug(f"Postflight: {' '.join(argv)}")
        commands.append(argv)
    return commands


def removes_quarantine(manifest: CaskManifest) -> bool:
    """Check whether postflight strips the quarantine attribute."""
    for command in manifest.postflight:
        if os.path.basename(command.executable) == 'xattr' and 'com.apple.quarantine' in command.args:
            return True
    return False


def zap_targets(manifest: CaskManifest, home: str = None) -> List[ZapTarget]:
    """Expand zap trash entries against a home directory.

    Args:
        manifest: Cask manifest
        home: Home directory to expand `~` against (defaults to the user's)

    Returns:
        One ZapTarget per entry, with the existing paths it matches
    """
    home = home or os.path.expanduser('~')
    targets = []
    for pattern in manifest.zap_trash:
        if pattern == '~' or pattern.startswith('~/'):
            path = os.path.join(home, pattern[2:])
        else:
            path = pattern
        matches = sorted(glob.glob(path))
        logger.debug(f"Zap {pattern}: {len(matches)} matches")
        targets.append(ZapTarget(pattern, path, matches))
    return targets
