"""Bundle orchestration.

Reads the binary target line by line and writes the single-file bundle:

- ``extern crate <name>;`` is replaced by the library root's contents, with
  every ``pub mod`` expanded into a nested block.
- ``use <name>::<path>;`` is dropped when ``<path>`` was inlined as a module,
  and rewritten to ``use <path>;`` otherwise.
- Comments and crate-level lint attributes are dropped (lossy on purpose:
  they shrink the bundle and ``#![warn(...)]`` is only valid once per crate).

The output is truncated at the start of a run and removed again if the run
fails, so a failed build never leaves a bundle that looks complete.
"""

import logging
import pathlib
import time

from rust_bundler.classifier import ClassifiedLine, LineClassifier, LineKind
from rust_bundler.errors import BundleError, BundleIOError, SourceFileNotFoundError
from rust_bundler.resolver import (
    TEST_MODULE_NAME,
    BundleStats,
    LineWriter,
    ModuleDescriptor,
    PendingAttributes,
    declared_module,
    expand_library_root,
    expand_module,
    scan_source,
)

# Import-path prefix for modules declared by the binary target itself. It can
# never equal a path captured from ``use <crate>::<path>;``.
_ENTRY_IMPORT_PREFIX: str = "crate"


def bundle(
    *,
    entry_path: pathlib.Path,
    library_root: pathlib.Path,
    output_path: pathlib.Path,
    crate_name: str,
    minify: bool = False,
    logger: logging.Logger | None = None,
    rerun_hint: bool = True,
) -> BundleStats:
    """Inline a crate into a single source file.

    :param entry_path: Binary target source (e.g. ``src/main.rs``).
    :param library_root: Library root source (e.g. ``src/lib.rs``).
    :param output_path: Path of the bundle to write.
    :param crate_name: Name the entry file uses for the library crate.
    :param minify: Strip leading/trailing whitespace from passthrough lines.
    :param logger: Optional logger for build progress output.
    :param rerun_hint: Print ``cargo:rerun-if-changed=<output>`` on success.
    :returns: Counters collected during the run.
    :raises BundleError: If bundling fails; the output file is removed.
    """

    if logger is None:
        logger = logging.getLogger("rust_bundler")

    classifier: LineClassifier = LineClassifier(crate_name)

    t0: float = time.perf_counter()
    logger.info(f"rust-bundler: entry={entry_path}")
    logger.info(f"rust-bundler: library={library_root}")
    logger.info(f"rust-bundler: output={output_path}")
    logger.info(f"rust-bundler: crate={crate_name} minify={minify}")

    stats: BundleStats = BundleStats()
    try:
        if entry_path.is_file() is False:
            raise SourceFileNotFoundError(f"Entry file does not exist: {entry_path}", path=entry_path)
        if library_root.is_file() is False:
            raise SourceFileNotFoundError(f"Library root does not exist: {library_root}", path=library_root)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8", newline="\n") as out:
            writer: LineWriter = LineWriter(out, minify=minify)
            _bundle_entry(
                entry_path=entry_path,
                library_root=library_root,
                classifier=classifier,
                writer=writer,
                stats=stats,
                logger=logger,
            )
            stats.lines_written = writer.lines_written
    except BundleError:
        _discard_output(output_path, logger=logger)
        raise
    except OSError as e:
        _discard_output(output_path, logger=logger)
        raise BundleIOError(f"Failed to write {output_path}: {e}") from e

    t1: float = time.perf_counter()
    logger.info(
        f"rust-bundler: wrote {output_path} ({stats.lines_written} lines, "
        f"{stats.modules_inlined} modules inlined, {stats.test_modules_skipped} test modules skipped) "
        f"in {t1 - t0:.2f}s"
    )
    if logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(
            f"rust-bundler: imports rewritten={stats.imports_rewritten} "
            f"suppressed={stats.imports_suppressed} lines dropped={stats.lines_dropped}"
        )

    if rerun_hint is True:
        print(f"cargo:rerun-if-changed={output_path}")
    return stats


def rewrite_crate_import(classified: ClassifiedLine, *, suppressed: set[str]) -> str | None:
    """Rewrite a ``use <crate>::<path>;`` line for the bundle.

    :param classified: A PLAIN_USE_OF_CRATE line.
    :param suppressed: Import paths of modules already inlined.
    :returns: ``None`` if the import is suppressed, else ``use <path>;`` with
        the original indentation.
    """

    path: str | None = classified.value
    if path is None or path in suppressed:
        return None

    line: str = classified.line
    indent: str = line[0 : len(line) - len(line.lstrip())]
    return f"{indent}use {path};"


def _bundle_entry(
    *,
    entry_path: pathlib.Path,
    library_root: pathlib.Path,
    classifier: LineClassifier,
    writer: LineWriter,
    stats: BundleStats,
    logger: logging.Logger,
) -> None:
    """Scan the entry file and write the bundle body.

    Outer attributes follow the item they annotate: they are written before a
    rewritten import or an expanded module, and dropped with a suppressed
    import, a replaced ``extern crate`` or a skipped test module.
    """

    suppressed: set[str] = set()
    library_expanded: bool = False
    attributes: PendingAttributes = PendingAttributes()

    for line_number, classified in scan_source(entry_path, classifier):
        kind: LineKind = classified.kind

        if kind is LineKind.COMMENT or kind is LineKind.LINT_ATTRIBUTE:
            stats.lines_dropped += 1
            continue

        if attributes.hold(classified) is True:
            continue

        if kind is LineKind.CRATE_IMPORT:
            stats.lines_dropped += attributes.discard()
            if library_expanded is True:
                logger.debug(f"rust-bundler: dropping repeated crate import ({entry_path}:{line_number})")
                stats.lines_dropped += 1
                continue
            expand_library_root(
                library_root,
                classifier=classifier,
                suppressed=suppressed,
                writer=writer,
                stats=stats,
                logger=logger,
            )
            library_expanded = True
            continue

        if kind is LineKind.PLAIN_USE_OF_CRATE:
            rewritten: str | None = rewrite_crate_import(classified, suppressed=suppressed)
            if rewritten is None:
                logger.debug(f"rust-bundler: suppressed import of inlined module {classified.value}")
                stats.imports_suppressed += 1
                stats.lines_dropped += attributes.discard()
                continue
            logger.debug(f"rust-bundler: rewrote import {classified.line.strip()!r} -> {rewritten.strip()!r}")
            stats.imports_rewritten += 1
            attributes.flush(writer)
            writer.write(rewritten)
            continue

        if kind is LineKind.MODULE_DECLARATION:
            module: ModuleDescriptor = declared_module(
                classified,
                parent_dir=entry_path.parent,
                import_prefix=_ENTRY_IMPORT_PREFIX,
                source_path=entry_path,
                line_number=line_number,
            )
            if module.name == TEST_MODULE_NAME:
                stats.test_modules_skipped += 1
                stats.lines_dropped += attributes.discard()
                logger.debug(f"rust-bundler: skipping test module ({entry_path}:{line_number})")
                continue
            attributes.flush(writer)
            expand_module(
                module,
                classifier=classifier,
                suppressed=suppressed,
                writer=writer,
                stats=stats,
                logger=logger,
            )
            continue

        attributes.flush(writer)
        writer.write(classified.line)

    attributes.flush(writer)


def _discard_output(output_path: pathlib.Path, *, logger: logging.Logger) -> None:
    """Remove a partially written bundle after a failed run.

    :param output_path: Bundle path.
    :param logger: Logger for cleanup failures.
    """

    try:
        output_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"rust-bundler: could not remove incomplete bundle {output_path}: {e}")
