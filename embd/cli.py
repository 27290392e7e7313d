"""The embd command line: an embedded utility belt."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from embd.host import detect_host

VERSION = "0.1.0"


def _detect(args: argparse.Namespace) -> int:
    try:
        host, rev = detect_host()
    except (OSError, ValueError, RuntimeError) as exc:
        print(exc)
        return 1
    print(f"detected host {host} (rev {rev:#x})")
    return 0


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="embd", description="embedded utility belt")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s version {VERSION}"
    )
    commands = parser.add_subparsers(dest="command", metavar="command")
    detect = commands.add_parser(
        "detect",
        help="detect and display information about the host",
        description="detect and display information about the host",
    )
    detect.set_defaults(func=_detect)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line and return the exit status."""
    parser = _parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    return func(args)


if __name__ == "__main__":
    sys.exit(main())