"""
dockast CLI Entrypoint.

This module provides the command-line interface for inspecting Dockerfiles.

Features:
    - Read source from a file or an inline string.
    - Print the parsed document (directive, comments, instructions with their
      arguments and variables) as JSON.
    - Resolve a variable at a given line instead of dumping the document.
    - Optional DEBUG logging of the scan.

Example usage:
    dockast Dockerfile
    dockast -s "FROM alpine:3.19" --indent 2
    dockast Dockerfile --resolve VERSION:12
    dockast Dockerfile --verbose

Functions:
    run_dockast(source: str, is_string: bool = False, indent: int | None = None,
                resolve: str | None = None) -> int:
        Parses the source and prints the requested output; returns an exit code.

    main() -> None:
        Parses CLI arguments and invokes ``run_dockast``.
"""

import argparse
import json
import logging
import sys

from dockast.dockast_constants import UNRESOLVED
from dockast.dockast_parser import parse

logger = logging.getLogger(__name__)


def parse_resolve_target(value: str) -> tuple[str, int]:
    """
    Split a ``NAME:LINE`` resolve request.

    Args:
        value (str): The request, the line being zero-based.

    Returns:
        tuple[str, int]: The variable name and the line.

    Raises:
        ValueError: If the request has no name or the line is not an integer.
    """
    name, sep, line = value.rpartition(":")
    if not sep or not name:
        raise ValueError(f"Expected NAME:LINE, got {value!r}")
    return name, int(line)


def run_dockast(
    source: str,
    is_string: bool = False,
    indent: int | None = None,
    resolve: str | None = None,
) -> int:
    """
    Run the dockast pipeline: read, parse, and print JSON.

    Args:
        source (str): Dockerfile content or path to a Dockerfile.
        is_string (bool): If True, treats `source` as content instead of a path. Defaults to False.
        indent (int | None): JSON indentation. Defaults to compact output.
        resolve (str | None): A ``NAME:LINE`` request. When given, prints the
            resolution result instead of the document.

    Returns:
        int: 0 on success, 1 when the file cannot be read or the resolve
        request is malformed.

    Side Effects:
        - Prints JSON to stdout and errors to stderr.
    """
    if not is_string:
        try:
            with open(source, encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            print(f"dockast: cannot read {source}: {e}", file=sys.stderr)
            return 1

    dockerfile = parse(source)

    if resolve is not None:
        try:
            name, line = parse_resolve_target(resolve)
        except ValueError as e:
            print(f"dockast: invalid --resolve value: {e}", file=sys.stderr)
            return 1
        value = dockerfile.resolve_variable(name, line)
        logger.debug("resolved %r at line %d to %r", name, line, value)
        result = {
            "name": name,
            "line": line,
            "resolved": value is not UNRESOLVED,
            "value": None if value is UNRESOLVED else value,
        }
        print(json.dumps(result, indent=indent))
        return 0

    print(json.dumps(dockerfile.to_dict(), indent=indent))
    return 0


def main(argv: list[str] | None = None) -> None:
    """
    Entry point for the dockast CLI.

    Supported flags:
        - `-s`, `--string`: Interpret source as Dockerfile content instead of a path.
        - `--indent N`: Indent the JSON output by N spaces.
        - `--resolve NAME:LINE`: Print the value of NAME as seen at LINE (zero-based).
        - `--verbose`: Enable DEBUG logging.

    Exits with the status returned by ``run_dockast``.
    """
    parser = argparse.ArgumentParser(prog="dockast")
    parser.add_argument("source", help="Dockerfile path or content (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal content"
    )
    parser.add_argument(
        "--indent", type=int, default=None, metavar="N", help="JSON indentation"
    )
    parser.add_argument(
        "--resolve",
        metavar="NAME:LINE",
        help="Resolve a variable at a zero-based line instead of dumping the document",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    sys.exit(
        run_dockast(
            source=args.source,
            is_string=args.string,
            indent=args.indent,
            resolve=args.resolve,
        )
    )


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    main()
