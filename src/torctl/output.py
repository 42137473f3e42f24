"""
Operator output for torctl.

Explanations, protocol details and debug messages are written to stderr so
they never mix with the control replies printed on stdout.
"""

import sys

_explain = False
_verbose = False
_debug = False


def configure(explain: bool = False, verbose: bool = False, debug: bool = False) -> None:
    """
    Set which classes of messages are shown.

    Args:
        explain: Show brief explanations of what's happening
        verbose: Show protocol-level information
        debug: Show debug information
    """
    global _explain, _verbose, _debug  # pylint: disable=global-statement
    _explain = explain
    _verbose = verbose
    _debug = debug


def explain(msg: str) -> None:
    """Print an explanation of the current step."""
    if _explain:
        print(f"  > {msg}", file=sys.stderr)


def verbose(msg: str) -> None:
    """Print a protocol-level message."""
    if _verbose:
        print(f"  [verbose] {msg}", file=sys.stderr)


def debug(msg: str) -> None:
    """Print a debug message."""
    if _debug:
        print(f"    [debug] {msg}", file=sys.stderr)
