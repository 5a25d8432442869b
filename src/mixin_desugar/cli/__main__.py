"""
Main Entry Point for the mixin-desugar CLI.

Handles argument parsing and dispatches to the handlers in
`mixin_desugar.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from mixin_desugar import __version__
from mixin_desugar.cli import commands


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="mixin-desugar: declarative mixins for Python classes")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: CONVERT ---
  cmd_conv = subparsers.add_parser("convert", help="Desugar a source file into plain Python")
  cmd_conv.add_argument("path", type=Path, help="Input source file")
  cmd_conv.add_argument("--out", type=Path, help="Output file (default: print to stdout)")
  cmd_conv.add_argument(
    "--strict",
    action="store_true",
    default=None,
    help="Reject mixin operands that the module never binds (Overrides config)",
  )
  cmd_conv.add_argument(
    "--no-import",
    dest="inject_import",
    action="store_false",
    default=None,
    help="Do not inject the runtime import (Overrides config)",
  )
  cmd_conv.add_argument("--json-trace", type=Path, default=None, help="Dump full execution trace to a JSON file.")

  # --- Command: CHECK ---
  cmd_check = subparsers.add_parser("check", help="Validate mixin syntax and operands without writing output")
  cmd_check.add_argument("path", type=Path, help="Input source file")
  cmd_check.add_argument("--strict", action="store_true", default=None, help="Reject unbound mixin operands")

  args = parser.parse_args(argv)

  if args.command == "convert":
    return commands.handle_convert(args.path, args.out, args.strict, args.inject_import, args.json_trace)

  elif args.command == "check":
    return commands.handle_check(args.path, args.strict)

  return 0


if __name__ == "__main__":
  sys.exit(main())
