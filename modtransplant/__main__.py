"""Main CLI entry point for modtransplant."""

import argparse
import logging
import sys
from typing import Optional

from . import __version__
from .commands.check import check_manifest
from .errors import ModTransplantError, UsageError
from .formatters import DecisionFormatter, ManifestFormatter
from .merger import MergeDecision, merge_manifests
from .parsers import load_manifest

logger = logging.getLogger(__name__)

USAGE = "modtransplant merge --dest=<destination-file> --src=<source-file> [--force-overwrite]"


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def handle_merge(args) -> int:
    """Handle the 'merge' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    if not args.dest or not args.src:
        raise UsageError(USAGE)

    dest = load_manifest(args.dest)
    src = load_manifest(args.src)
    logger.info(f"Destination: {args.dest} ({dest.module}), source: {args.src} ({src.module})")

    def print_decision(decision: MergeDecision) -> None:
        sys.stderr.write(DecisionFormatter.format_as_lines([decision]))

    sink = None if args.quiet else print_decision
    result = merge_manifests(dest, src, force_overwrite=args.force_overwrite, sink=sink)
    output = ManifestFormatter.format(result.manifest)

    if args.report:
        report = DecisionFormatter.format_as_json(
            result.decisions, args.dest, args.src, force_overwrite=args.force_overwrite
        )
        try:
            with open(args.report, 'w') as f:
                f.write(report)
        except OSError as e:
            logger.error(f"Error writing report: {e}")
            print(f"Error writing report: {e}", file=sys.stderr)
            return 1
        logger.info(f"Report written to: {args.report}")

    print(output, end='')
    return 0


def handle_fmt(args) -> int:
    """Handle the 'fmt' subcommand."""
    setup_logging(args.verbose, args.loglevel)
    manifest = load_manifest(args.input)
    manifest.normalize()
    print(ManifestFormatter.format(manifest), end='')
    return 0


def handle_check(args) -> int:
    """Handle the 'check' subcommand."""
    setup_logging(args.verbose, args.loglevel)
    return check_manifest(load_manifest(args.input))


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')
    parser.add_argument('--loglevel', choices=['TRACE', 'DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set log level')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='modtransplant',
        description='Merge the requirements, replacements and exclusions of one go.mod into another'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    # Merge command
    merge_parser = subparsers.add_parser('merge', help='Merge a source go.mod into a destination go.mod')
    merge_parser.add_argument('--dest', '-dest', help='Destination go.mod file or URL')
    merge_parser.add_argument('--src', '-src', help='Source go.mod file or URL')
    merge_parser.add_argument('--force-overwrite', '-force-overwrite', action='store_true',
                              help='Force overwrite of versions of matching module paths')
    merge_parser.add_argument('--report', metavar='FILE',
                              help='Write a JSON report of every merge decision to FILE')
    merge_parser.add_argument('-q', '--quiet', action='store_true',
                              help='Do not print merge decisions to stderr')
    _add_logging_arguments(merge_parser)
    merge_parser.set_defaults(func=handle_merge)

    # Fmt command
    fmt_parser = subparsers.add_parser('fmt', help='Print a go.mod file in canonical form')
    fmt_parser.add_argument('input', help='go.mod file or URL')
    _add_logging_arguments(fmt_parser)
    fmt_parser.set_defaults(func=handle_fmt)

    # Check command
    check_parser = subparsers.add_parser('check', help='Report duplicate and self-referencing entries')
    check_parser.add_argument('input', help='go.mod file or URL')
    _add_logging_arguments(check_parser)
    check_parser.set_defaults(func=handle_check)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    try:
        return args.func(args)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ModTransplantError as e:
        logger.debug(f"Merge aborted: {e!r}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
