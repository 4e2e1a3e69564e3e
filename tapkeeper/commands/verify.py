"""Verify command implementation."""

import json
import sys
from ..utils.ui import Colors, SectionDivider, TableFormatter
from ..core.verifier import MATCH, MISMATCH, SKIPPED, verify_history, verify_manifest
from ..providers.artifacts import ArtifactFetcher


def parse_assignments(values, what):
    """Parse repeated ARCH=VALUE options into a dict.

    Raises:
        ValueError: If an entry has no '='
    """
    result = {}
    for value in values or []:
        arch, sep, rest = value.partition('=')
        if not sep or not arch or not rest:
            raise ValueError(f"Expected ARCH=VALUE for {what}, got {value!r}")
        result[arch.strip()] = rest.strip()
    return result


def _status_cell(status):
    if status == MATCH:
        return f"{Colors.GREEN}{status}{Colors.RESET}"
    if status == SKIPPED:
        return f"{Colors.DIM}{status}{Colors.RESET}"
    if status == MISMATCH:
        return f"{Colors.RED}{status}{Colors.RESET}"
    return f"{Colors.YELLOW}{status}{Colors.RESET}"


def _print_results(token, version, results):
    rows = [(r.arch, _status_cell(r.status), r.expected or '-', r.actual or '-') for r in results]
    print(f"\n{Colors.BOLD}Checksums for {token} {version}:{Colors.RESET}")
    print(TableFormatter().format_table(headers=['Arch', 'Status', 'Declared', 'Actual'], rows=rows))


def handle_verify_command(args, manifest, history=None, fetcher=None):
    """Handle the verify subcommand.

    Args:
        args: Parsed arguments
        manifest: Current cask manifest
        history: ManifestHistory for the cask, needed for --version and --history
        fetcher: Object with `sha256_of_url(url)`, defaults to ArtifactFetcher

    Returns:
        Exit status: 1 if any checksum did not match or could not be checked

    Raises:
        ValueError: On bad options or a version with no usable record
    """
    files = parse_assignments(args.file, '--file')
    archs = args.arch or None
    if args.history and (files or args.version):
        raise ValueError("--history cannot be combined with --file or --version")

    records = list(history or [])
    if manifest not in records:
        records.append(manifest)
    fetcher = fetcher or ArtifactFetcher(show_progress=args.format == 'table' and sys.stdout.isatty())

    if args.history:
        audits = [(record.version, results) for record, results in verify_history(records, fetcher, archs)]
    else:
        results = verify_manifest(manifest, fetcher, archs=archs, version=args.version,
                                  files=files, records=records)
        audits = [(args.version or manifest.version, results)]

    failed = [r for _, results in audits for r in results if not r.ok]

    if args.format == 'json':
        if args.history:
            payload = {
                'token': manifest.token,
                'records': [{
                    'version': version,
                    'results': [r.to_dict() for r in results],
                    'ok': all(r.ok for r in results),
                } for version, results in audits],
                'ok': not failed,
            }
        else:
            version, results = audits[0]
            payload = {
                'token': manifest.token,
                'version': version,
                'results': [r.to_dict() for r in results],
                'ok': not failed,
            }
        print(json.dumps(payload, indent=2))
        return 1 if failed else 0

    if args.history:
        print(SectionDivider.format_header(f"Checksum audit for {manifest.token} ({len(audits)} records)"))
    for version, results in audits:
        _print_results(manifest.token, version, results)
    return 1 if failed else 0
