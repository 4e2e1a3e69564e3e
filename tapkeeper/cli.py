"""Command-line interface for tapkeeper."""

import argparse
import logging
import sys
from pathlib import Path

from .utils.ui import Colors, PerformanceTimer
from .core.caskfile import CaskSyntaxError, load_cask
from .core.history import history_path, load_history
from .core.lifecycle import DEFAULT_APPDIR
from .commands.info import handle_info_command, handle_url_command
from .commands.validate import handle_validate_command
from .commands.livecheck import handle_livecheck_command
from .commands.verify import handle_verify_command
from .commands.bump import handle_bump_command
from .commands.plan import handle_plan_command

DEFAULT_TOKEN = 'logparser'

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='tapkeeper',
        description="Maintain the LogParser Homebrew tap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tapkeeper info                       # Show the current cask
  tapkeeper url --arch arm             # Resolve the Apple Silicon download URL
  tapkeeper validate --history         # Check every published record
  tapkeeper livecheck                  # Look for a newer upstream release
  tapkeeper verify                     # Download artifacts and check checksums
  tapkeeper bump 0.4.34 --dry-run      # Preview the next cask version
  tapkeeper plan                       # Show postflight and zap side effects

For more help on a command: tapkeeper <command> --help
        """
    )
    parser.add_argument('--tap', default='.',
                        help='Tap directory containing Casks/ and history/ (default: current directory)')
    parser.add_argument('--cask', default=None,
                        help=f'Cask file to operate on (default: <tap>/Casks/{DEFAULT_TOKEN}.rb)')
    parser.add_argument('--cache-dir', default=None,
                        help='Directory for cached livecheck pages (default: ~/.cache/tapkeeper/livecheck)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging and timing output')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    info_parser = subparsers.add_parser('info', help='Show the cask manifest')
    info_parser.add_argument('--format', choices=['table', 'json', 'ruby'], default='table',
                             help='Output format (default: table)')

    url_parser = subparsers.add_parser('url', help='Resolve download URLs')
    url_parser.add_argument('--arch', choices=['arm', 'intel', 'all'], default='all',
                            help='Architecture to resolve (default: all)')
    url_parser.add_argument('--version', default=None,
                            help="Version to resolve (default: the cask's version)")

    validate_parser = subparsers.add_parser('validate', help='Validate the cask manifest')
    validate_parser.add_argument('--history', action='store_true',
                                 help='Also check superseded records for version/checksum inconsistencies')
    validate_parser.add_argument('--format', choices=['table', 'json'], default='table',
                                 help='Output format (default: table)')

    livecheck_parser = subparsers.add_parser('livecheck', help='Check for a newer upstream version')
    livecheck_parser.add_argument('--force-refresh', action='store_true',
                                  help='Ignore the cached livecheck page')
    livecheck_parser.add_argument('--format', choices=['table', 'json'], default='table',
                                  help='Output format (default: table)')

    verify_parser = subparsers.add_parser('verify', help='Check declared checksums against the artifacts')
    verify_parser.add_argument('--arch', action='append', choices=['arm', 'intel'],
                               help='Architecture to check (repeatable; default: all)')
    verify_parser.add_argument('--version', default=None,
                               help="Version to audit, looked up in the history file (default: the cask's version)")
    verify_parser.add_argument('--file', action='append', metavar='ARCH=PATH',
                               help='Hash a local artifact instead of downloading (repeatable)')
    verify_parser.add_argument('--history', action='store_true',
                               help='Audit every record in the history file against its own checksums')
    verify_parser.add_argument('--format', choices=['table', 'json'], default='table',
                               help='Output format (default: table)')

    bump_parser = subparsers.add_parser('bump', help='Supersede the cask with a new version')
    bump_parser.add_argument('new_version', help='Version to bump to')
    bump_parser.add_argument('--sha256', action='append', metavar='ARCH=HEX',
                             help='Checksum for an architecture (repeatable; others are computed)')
    bump_parser.add_argument('--dry-run', action='store_true',
                             help='Print the new cask without writing anything')

    plan_parser = subparsers.add_parser('plan', help='Show the install and zap side effects')
    plan_parser.add_argument('--appdir', default=DEFAULT_APPDIR,
                             help=f'Application directory (default: {DEFAULT_APPDIR})')
    plan_parser.add_argument('--home', default=None,
                             help='Home directory to expand zap paths against (default: yours)')
    plan_parser.add_argument('--format', choices=['table', 'json'], default='table',
                             help='Output format (default: table)')

    args = parser.parse_args(argv)

    # If no command is specified, default to info
    if args.command is None:
        args.command = 'info'
        args.format = 'table'

    return args


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    args = parse_arguments(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    cask_path = Path(args.cask) if args.cask else Path(args.tap) / 'Casks' / f'{DEFAULT_TOKEN}.rb'

    try:
        manifest = load_cask(cask_path)
    except FileNotFoundError:
        print(f"{Colors.RED}Cask file not found: {cask_path}{Colors.RESET}", file=sys.stderr)
        return 2
    except CaskSyntaxError as e:
        print(f"{Colors.RED}Could not parse {cask_path}: {e}{Colors.RESET}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"{Colors.RED}Could not read {cask_path}: {e}{Colors.RESET}", file=sys.stderr)
        return 2

    history_file = history_path(args.tap, manifest.token)

    with PerformanceTimer(f"tapkeeper {args.command} command", show_logs=args.verbose):
        try:
            if args.command == 'info':
                return handle_info_command(args, manifest)
            elif args.command == 'url':
                return handle_url_command(args, manifest)
            elif args.command == 'validate':
                history = load_history(history_file, manifest.token) if args.history else None
                return handle_validate_command(args, manifest, history)
            elif args.command == 'livecheck':
                return handle_livecheck_command(args, manifest)
            elif args.command == 'verify':
                history = None
                if args.history or (args.version and args.version != manifest.version):
                    history = load_history(history_file, manifest.token)
                return handle_verify_command(args, manifest, history)
            elif args.command == 'bump':
                return handle_bump_command(args, manifest, cask_path, history_file)
            elif args.command == 'plan':
                return handle_plan_command(args, manifest)
        except ValueError as e:
            logger.debug("Command failed", exc_info=True)
            print(f"{Colors.RED}Error: {e}{Colors.RESET}", file=sys.stderr)
            return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
