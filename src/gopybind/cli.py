from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    from .paths import default_log_level

    parser = argparse.ArgumentParser(prog="gopybind")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="Print gopybind version.")

    p_gen = sub.add_parser(
        "gen",
        help="Generate a CPython extension module (C source) from a Go package manifest.",
    )
    p_gen.add_argument(
        "--model",
        required=True,
        help="Package manifest (.json, or .msgpack/.mpk for MessagePack).",
    )
    p_gen.add_argument(
        "--out",
        default=None,
        help="Output directory (default: GOPYBIND_OUT_DIR or the current directory).",
    )
    p_gen.add_argument(
        "--header",
        default=None,
        help="Base name of the cgo export header (default: package name).",
    )
    p_gen.add_argument(
        "--allow-partial",
        action="store_true",
        help="Write the source even when some entities could not be bound.",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else default_log_level(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "version":
        try:
            print(importlib.metadata.version("gopybind"))
        except Exception:
            # Best-effort fallback for editable/local-only contexts.
            print("0.0.0")
        return 0

    if args.cmd == "gen":
        from .cpygen import GenOptions, generate
        from .errors import GoPyBindError
        from .loader import load_package
        from .paths import default_output_dir

        try:
            pkg = load_package(Path(args.model))
        except GoPyBindError as e:
            print(f"gopybind: {e}", file=sys.stderr)
            return 2

        out_dir = Path(args.out) if args.out else default_output_dir()
        result = generate(pkg, GenOptions(header_name=args.header))
        for e in result.errors:
            print(f"gopybind: {e}", file=sys.stderr)
        if result.errors and not args.allow_partial:
            print(
                f"gopybind: {len(result.errors)} error(s); nothing written (use --allow-partial)",
                file=sys.stderr,
            )
            return 1

        out_file = result.write(out_dir)
        print(str(out_file))
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
