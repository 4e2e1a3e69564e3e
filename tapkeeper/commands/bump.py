"""Bump command implementation."""

import sys
from ..utils.ui import Colors, StatusIcons
from ..utils.versions import compare_versions, is_valid_version
from ..core.caskfile import render_cask, write_cask
from ..core.history import load_history, save_history
from ..core.validator import validate_all
from ..core.verifier import compute_checksums
from ..providers.artifacts import ArtifactFetcher
from .verify import parse_assignments


def handle_bump_command(args, manifest, cask_path, history_file, fetcher=None):
    """Handle the bump subcommand.

    Supersedes the current manifest with a new version. Checksums not given
    on the command line are computed by downloading the new artifacts.
    """
    new_version = args.new_version
    if not is_valid_version(new_version):
        print(f"{Colors.RED}{StatusIcons.FAILED} Invalid version: {new_version}{Colors.RESET}")
        return 1
    if compare_versions(new_version, manifest.version) <= 0:
        print(f"{Colors.RED}{StatusIcons.FAILED} {new_version} is not newer than {manifest.version}{Colors.RESET}")
        return 1

    checksums = parse_assignments(args.sha256, '--sha256')
    unknown = sorted(set(checksums) - set(manifest.architectures()))
    if unknown:
        print(f"{Colors.RED}{StatusIcons.FAILED} Unknown architecture(s): {', '.join(unknown)}{Colors.RESET}")
        return 1

    missing = [arch for arch in manifest.architectures() if arch not in checksums]
    if missing:
        fetcher = fetcher or ArtifactFetcher(show_progress=sys.stdout.isatty())
        print(f"{Colors.DIM}Computing checksums for {', '.join(missing)}...{Colors.RESET}")
        computed = compute_checksums(manifest, new_version, fetcher, missing)
        failed = [arch for arch, value in computed.items() if value is None]
        if failed:
            print(f"{Colors.RED}{StatusIcons.FAILED} Could not download artifacts for: {', '.join(failed)}{Colors.RESET}")
            return 1
        checksums.update(computed)

    # Keep the declared key order (arm before intel)
    ordered = {arch: checksums[arch] for arch in manifest.architectures()}

    history = load_history(history_file, manifest.token)
    if not history.contains(manifest):
        history.add(manifest)
    successor = history.supersede(new_version, ordered)

    # Older problems already in history do not block a new release
    errors = [i for i in validate_all(list(history)).errors if i.version == new_version]
    if errors:
        print(f"{Colors.RED}{StatusIcons.FAILED} Refusing to bump, validation failed:{Colors.RESET}")
        for issue in errors:
            print(f"  {StatusIcons.BULLET} [{issue.code}] {issue.message}")
        return 1

    if args.dry_run:
        print(f"{Colors.ORANGE}[DRY RUN]{Colors.RESET} {manifest.token} {manifest.version} {StatusIcons.ARROW} {new_version}")
        print(render_cask(successor), end='')
        return 0

    write_cask(successor, cask_path)
    save_history(history, history_file)
    print(f"{Colors.GREEN}{StatusIcons.SUCCESS} {manifest.token} bumped to {new_version}{Colors.RESET}")
    print(f"{Colors.DIM}  cask:    {cask_path}\n  history: {history_file}{Colors.RESET}")
    return 0
