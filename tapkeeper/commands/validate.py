"""Validate command implementation."""

import json
from ..utils.ui import Colors, TableFormatter, StatusIcons
from ..core.validator import ERROR, validate_manifest, validate_all


def handle_validate_command(args, manifest, history=None):
    """Handle the validate subcommand.

    Returns:
        Exit status: 1 if any error was found, else 0
    """
    records = list(history or [])
    if args.history:
        if manifest not in records:
            records.append(manifest)
        report = validate_all(records)
        checked = len(records)
    else:
        report = validate_manifest(manifest)
        checked = 1

    if args.format == 'json':
        result = report.to_dict()
        result['records_checked'] = checked
        print(json.dumps(result, indent=2))
        return 0 if report.ok else 1

    if not report.issues:
        print(f"{Colors.GREEN}{StatusIcons.SUCCESS} {manifest.token}: {checked} record(s) valid{Colors.RESET}")
        return 0

    rows = []
    for issue in report:
        if issue.severity == ERROR:
            severity = f"{Colors.RED}{StatusIcons.FAILED} error{Colors.RESET}"
        else:
            severity = f"{Colors.YELLOW}{StatusIcons.WARNING} warning{Colors.RESET}"
        rows.append((severity, issue.version, issue.code, issue.message))

    print(f"\n{Colors.BOLD}Validation of {manifest.token} ({checked} record(s)):{Colors.RESET}")
    print(TableFormatter().format_table(headers=['Severity', 'Version', 'Check', 'Detail'], rows=rows))
    print(f"\n{len(report.errors)} error(s), {len(report.warnings)} warning(s)")
    return 0 if report.ok else 1
