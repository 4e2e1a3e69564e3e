"""Info and url command implementations."""

import json
from ..utils.ui import Colors, TableFormatter
from ..core.caskfile import render_cask


def handle_info_command(args, manifest):
    """Handle the info subcommand"""
    if args.format == 'json':
        print(json.dumps(manifest.to_api_dict(), indent=2))
        return 0

    if args.format == 'ruby':
        print(render_cask(manifest), end='')
        return 0

    formatter = TableFormatter()
    rows = [
        ('Token', manifest.token),
        ('Name', ', '.join(manifest.name)),
        ('Version', f"{Colors.GREEN}{manifest.version}{Colors.RESET}"),
        ('Description', manifest.desc),
        ('Homepage', manifest.homepage),
        ('Requires', manifest.depends_on_macos.describe() if manifest.depends_on_macos else '-'),
        ('Conflicts', ', '.join(manifest.conflicts_with) or '-'),
        ('App', manifest.app or '-'),
    ]
    for arch in manifest.architectures():
        rows.append((f"sha256 ({arch})", manifest.checksum_for(arch) or f"{Colors.YELLOW}missing{Colors.RESET}"))
    if manifest.livecheck:
        rows.append(('Livecheck', manifest.livecheck.url))

    print(f"\n{Colors.BOLD}Cask {manifest.token}:{Colors.RESET}")
    print(formatter.format_table(headers=['Field', 'Value'], rows=rows))
    return 0


def handle_url_command(args, manifest):
    """Handle the url subcommand"""
    archs = manifest.architectures() if args.arch == 'all' else [args.arch]
    for arch in archs:
        url = manifest.resolve_url(arch, args.version)
        if len(archs) > 1:
            print(f"{arch}\t{url}")
        else:
            print(url)
    return 0
