"""
CLI interface for torctl.

Provides the torctl, torctl-circuit and torctl-stream commands.
"""

import argparse
import sys
from collections.abc import Callable
from typing import NoReturn

from torctl import __version__, output
from torctl.cli_helpers import build_session_config, command_batch, non_negative_float
from torctl.control.controller import run
from torctl.control.errors import TorctlError
from torctl.views.circuits import fetch_circuits, render_circuits
from torctl.views.streams import fetch_streams, render_streams

EXAMPLES = """\
examples:
  torctl GETCONF User
  torctl -s unix:/run/tor/control -c "SIGNAL NEWNYM"
  torctl -s 9051 -p hunter2 -c "GETINFO version"
"""


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser exiting with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the socket, password and verbosity flags shared by all commands."""
    parser.add_argument(
        "-s",
        "--socket",
        metavar="SOCKET",
        help="Control socket: [unix:]path or [addr:]port (default: autodiscover)",
    )
    parser.add_argument(
        "-p", "--password", metavar="PASSWORD", help="Password for HASHEDPASSWORD authentication"
    )
    parser.add_argument(
        "-e", "--explain", action="store_true", help="Show brief explanations of what's happening"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for protocol info, -vv for debug)",
    )
    parser.add_argument("--version", action="version", version=__version__)


def build_parser() -> argparse.ArgumentParser:
    """Build the torctl argument parser."""
    parser = _ArgumentParser(
        prog="torctl",
        description="Send commands to Tor's control port",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--command",
        dest="command_string",
        metavar="CMD",
        help='Command(s) to send, separated by "|"',
    )
    add_connection_arguments(parser)
    parser.add_argument(
        "-t",
        "--delay",
        type=non_negative_float,
        default=0.0,
        metavar="SECONDS",
        help="Delay before each command (default: 0)",
    )
    parser.add_argument(
        "-w", "--wait", action="store_true", help="Wait for confirmation before closing"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Don't print the reply")
    parser.add_argument("words", nargs="*", metavar="command", help="Command (if -c is absent)")
    return parser


def build_view_parser(prog: str, description: str) -> argparse.ArgumentParser:
    """Build the argument parser of a listing command."""
    parser = _ArgumentParser(prog=prog, description=description)
    add_connection_arguments(parser)
    return parser


def configure_output(args: argparse.Namespace) -> None:
    """Configure output verbosity from global flags."""
    # -v enables verbose, -vv enables both verbose and debug
    verbosity = args.verbose
    output.configure(
        explain=args.explain,
        verbose=verbosity >= 1,
        debug=verbosity >= 2,
    )


def cmd_control(args: argparse.Namespace) -> int:
    """Send the command batch and print the reply."""
    commands = command_batch(args)
    config = build_session_config(args, commands)
    result = run(config)

    if not config.quiet and result.user_text:
        print(result.user_text)
    for event in result.events:
        output.verbose(f"Event: {event.text}")
    return result.exit_code


def cmd_circuits(args: argparse.Namespace) -> int:
    """List built circuits."""
    config = build_session_config(args)
    print(render_circuits(fetch_circuits(config)))
    return 0


def cmd_streams(args: argparse.Namespace) -> int:
    """List open streams."""
    config = build_session_config(args)
    print(render_streams(fetch_streams(config)))
    return 0


def _dispatch(handler: Callable[[argparse.Namespace], int], args: argparse.Namespace) -> int:
    """Run a command handler, reporting errors as exit codes."""
    configure_output(args)
    try:
        return handler(args)
    except TorctlError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the torctl CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not command_batch(args):
        parser.error("no command given (use -c CMD or pass the command as arguments)")

    return _dispatch(cmd_control, args)


def main_circuit(argv: list[str] | None = None) -> int:
    """Entry point for torctl-circuit."""
    parser = build_view_parser("torctl-circuit", "List Tor's built circuits")
    return _dispatch(cmd_circuits, parser.parse_args(argv))


def main_stream(argv: list[str] | None = None) -> int:
    """Entry point for torctl-stream."""
    parser = build_view_parser("torctl-stream", "List Tor's open streams")
    return _dispatch(cmd_streams, parser.parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
