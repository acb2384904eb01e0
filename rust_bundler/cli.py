"""Command line interface for rust-bundler."""

import argparse
import logging
import pathlib
import sys

from rust_bundler.bundler import bundle
from rust_bundler.cargo import BundleConfig, resolve_bundle_config
from rust_bundler.errors import BundleError

_PLAIN_FORMAT: str = "%(message)s"
_TRACE_FORMAT: str = "%(relativeCreated)6.0fms %(levelname)-7s %(message)s"


def _configure_logging(*, verbose: int, quiet: int) -> logging.Logger:
    """Configure the rust-bundler logger.

    ``-v`` enables per-module DEBUG output; ``-vv`` also prefixes every record
    with the milliseconds since startup and its level.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+); wins over ``verbose``.
    :returns: Configured logger.
    """

    level: int = logging.INFO
    if quiet >= 2:
        level = logging.ERROR
    elif quiet >= 1:
        level = logging.WARNING
    elif verbose >= 1:
        level = logging.DEBUG

    fmt: str = _TRACE_FORMAT if verbose >= 2 and quiet == 0 else _PLAIN_FORMAT

    logger: logging.Logger = logging.getLogger("rust_bundler")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def _build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="rust-bundler",
        description="Inline a Rust crate (binary + library modules) into one .rs file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser(
        "build",
        help="Build a single-file .rs bundle.",
    )
    p_build.add_argument(
        "manifest_dir",
        type=pathlib.Path,
        nargs="?",
        default=pathlib.Path("."),
        help="Crate directory containing Cargo.toml (defaults to the current directory).",
    )
    p_build.add_argument(
        "-o",
        "--output",
        type=pathlib.Path,
        required=True,
        help="Output path for the bundled single-file .rs.",
    )
    p_build.add_argument(
        "--bin",
        type=str,
        default=None,
        help="Name of the [[bin]] target to bundle. Defaults to src/main.rs.",
    )
    p_build.add_argument(
        "--entry",
        type=pathlib.Path,
        default=None,
        help="Entry file path, overriding the one found in Cargo.toml.",
    )
    p_build.add_argument(
        "--lib",
        type=pathlib.Path,
        default=None,
        help="Library root path, overriding the one found in Cargo.toml.",
    )
    p_build.add_argument(
        "--crate-name",
        type=str,
        default=None,
        help="Crate name used by the entry file in 'extern crate' / 'use' lines.",
    )
    p_build.add_argument(
        "--minify",
        action="store_true",
        help="Strip leading/trailing whitespace from every line of the bundle.",
    )
    p_build.add_argument(
        "--no-rerun-hint",
        action="store_true",
        help="Do not print the cargo:rerun-if-changed directive after a successful build.",
    )
    p_build.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging. Pass twice to add timing and level to every line.",
    )
    p_build.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Reduce logging. Pass multiple times to suppress more output.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the rust-bundler CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    parser: argparse.ArgumentParser = _build_parser()
    ns = parser.parse_args(argv)
    if ns.command == "build":
        logger: logging.Logger = _configure_logging(verbose=ns.verbose, quiet=ns.quiet)
        try:
            config: BundleConfig = resolve_bundle_config(
                manifest_dir=ns.manifest_dir,
                output_path=ns.output,
                bin_name=ns.bin,
                entry_override=ns.entry,
                library_override=ns.lib,
                crate_name_override=ns.crate_name,
                minify=ns.minify,
            )
            bundle(
                entry_path=config.entry_path,
                library_root=config.library_root,
                output_path=config.output_path,
                crate_name=config.crate_name,
                minify=config.minify,
                logger=logger,
                rerun_hint=not ns.no_rerun_hint,
            )
        except BundleError as e:
            logger.error(f"rust-bundler: error: {e}")
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {ns.command}")


if __name__ == "__main__":
    raise SystemExit(main())
