"""Livecheck command implementation."""

import json
from ..utils.ui import Colors, StatusIcons
from ..providers.releases import ReleaseChecker


def handle_livecheck_command(args, manifest, checker=None):
    """Handle the livecheck subcommand"""
    checker = checker or ReleaseChecker(cache_dir=args.cache_dir)
    result = checker.check(manifest, force_refresh=args.force_refresh)

    if args.format == 'json':
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    if result.latest is None:
        print(f"{Colors.YELLOW}{StatusIcons.WARNING} {manifest.token}: could not determine the latest version{Colors.RESET}")
    elif result.outdated:
        print(f"{Colors.ORANGE}{manifest.token}: {result.current} {StatusIcons.ARROW} {result.latest}{Colors.RESET}")
    else:
        print(f"{Colors.GREEN}{StatusIcons.SUCCESS} {manifest.token}: {result.current} is up to date{Colors.RESET}")
    return 0
