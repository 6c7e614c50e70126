"""CLI entry point: run `ratcc file.rat` or `python -m ratcc file.rat`."""

import logging
import os
import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    from . import config
    from .pipeline import RatFrontend
    from .semantic.ir import dump

    parser = argparse.ArgumentParser(prog="ratcc", description="Check a Rat (.rat) file and print its IR.")
    parser.add_argument("file", type=Path, help="Path to .rat source file")
    parser.add_argument("--no-stdlib", action="store_true", help="Do not load the standard library")
    parser.add_argument("--stdlib", type=Path, action="append", default=[], metavar="FILE",
                        help="Load extra native declarations from FILE (repeatable)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else os.environ.get(config.LOG_LEVEL_ENV, config.DEFAULT_LOG_LEVEL)
    logging.basicConfig(level=level.upper(), format=config.LOG_FORMAT)

    path = args.file.resolve()
    if not path.exists():
        sys.stderr.write(f"ratcc: error: file not found: {path}\n")
        return 1
    if not path.is_file():
        sys.stderr.write(f"ratcc: error: not a file: {path}\n")
        return 1
    if path.suffix != config.SOURCE_SUFFIX:
        sys.stderr.write(f"ratcc: warning: {path.name} does not end in {config.SOURCE_SUFFIX}\n")

    frontend = RatFrontend()
    if not args.no_stdlib:
        frontend.load_standard_library()
    for stdlib_file in args.stdlib:
        frontend.load_stdlib_from_file(stdlib_file)

    result = frontend.process_file(path)
    for warning in result.diags.warnings:
        sys.stderr.write(f"{warning}\n")

    if not result.success:
        sys.stderr.write(result.diags.report() + "\n")
        return 1

    print(dump(result.program))
    return 0


if __name__ == "__main__":
    sys.exit(main())
