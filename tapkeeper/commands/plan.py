"""Plan command implementation."""

import json
import shlex
from ..utils.ui import Colors, SectionDivider, StatusIcons, TableFormatter
from ..core.lifecycle import install_target, postflight_commands, removes_quarantine, zap_targets


def handle_plan_command(args, manifest):
    """Handle the plan subcommand (dry run of install and zap side effects)"""
    target = install_target(manifest, args.appdir)
    commands = postflight_commands(manifest, args.appdir)
    targets = zap_targets(manifest, args.home)

    if args.format == 'json':
        print(json.dumps({
            'token': manifest.token,
            'version': manifest.version,
            'install_target': target,
            'removes_quarantine': removes_quarantine(manifest),
            'postflight': commands,
            'zap': [t._asdict() for t in targets],
        }, indent=2))
        return 0

    print(SectionDivider.format_header(f"Install {manifest.token} {manifest.version}"))
    print(f"  {StatusIcons.ARROW} {target}")
    if removes_quarantine(manifest):
        print(f"  {Colors.DIM}{StatusIcons.INFO} quarantine attribute is removed after install{Colors.RESET}")

    if commands:
        print(SectionDivider.format_header("Postflight"))
        for argv in commands:
            print(f"  $ {' '.join(shlex.quote(a) for a in argv)}")

    if targets:
        print(SectionDivider.format_header("Zap"))
        rows = []
        for zap in targets:
            if zap.matches:
                found = f"{Colors.YELLOW}{len(zap.matches)} found{Colors.RESET}"
            else:
                found = f"{Colors.DIM}none{Colors.RESET}"
            rows.append((zap.pattern, found))
        print(TableFormatter().format_table(headers=['Path', 'Present'], rows=rows))

    print(f"\n{Colors.DIM}Nothing was changed; the package manager performs these steps.{Colors.RESET}")
    return 0
