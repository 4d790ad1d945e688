"""``callcase-gen``: generate adapters for ``wrapper_todo`` placeholders.

Usage:
    callcase-gen [--check] [--print] [--verbose] PATH...

PATH is a file, a directory (its own files) or ``dir/...`` (recursive).
Exit status: 0 on success, 1 when ``--check`` finds drift, 2 on errors.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from callcase.foundation.config import get_settings
from callcase.foundation.errors import SynthesisError
from callcase.runtime.observability import configure_logging, get_logger

from .rewrite import check_file, iter_source_files, rewrite_file

log = get_logger("callcase.synth.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callcase-gen",
        description="Replace wrapper_todo(func) placeholders with generated Wrapper adapters "
                    "and refresh previously generated adapters.",
    )
    parser.add_argument("paths", nargs="+", metavar="PATH", help="file, directory or dir/... to process")
    parser.add_argument("--check", action="store_true",
                        help="report missing or outdated adapters without writing, exit 1 on drift")
    parser.add_argument("--print", dest="print_only", action="store_true",
                        help="print rewritten sources to stdout instead of writing them")
    parser.add_argument("--verbose", "-v", action="store_true", help="log every processed file")
    parser.add_argument("--search-path", dest="search_paths", action="append", type=Path, default=None,
                        metavar="DIR", help="extra root for resolving absolute imports (repeatable)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    verbose = args.verbose or get_settings().gen.verbose
    configure_logging(level="DEBUG" if verbose else None)
    search_paths = [*args.search_paths, *(Path(p) for p in sys.path if p)] if args.search_paths else None

    drift = False
    try:
        for target in args.paths:
            for path in iter_source_files(target):
                if args.check:
                    report = check_file(path, search_paths=search_paths)
                    if not report.ok:
                        drift = True
                        print(report.render())
                    continue
                outcome = rewrite_file(path, write=not args.print_only, search_paths=search_paths)
                if args.print_only:
                    sys.stdout.write(outcome.source)
    except SynthesisError as exc:
        log.error("generation failed", error=str(exc))
        print(f"callcase-gen: {exc}", file=sys.stderr)
        return 2
    return 1 if drift else 0


if __name__ == "__main__":
    raise SystemExit(main())
