"""Module resolution and recursive expansion.

A ``pub mod foo;`` declaration is replaced by a ``pub mod foo { ... }`` block
holding the contents of ``foo.rs`` (or ``foo/mod.rs``). Nested declarations
inside that file are expanded the same way, depth first and in declaration
order, so the output nests exactly like the on-disk module tree.

Every module's import path is recorded in a suppression set right before its
body is inlined. The set is owned by the caller and threaded through every
call; nothing here keeps module-level state.
"""

from collections.abc import Iterator
from dataclasses import dataclass
import logging
import pathlib
import re
from typing import TextIO

from rust_bundler.classifier import ClassifiedLine, LineClassifier, LineKind
from rust_bundler.errors import BundleIOError, MalformedDeclarationError, ModuleFileNotFoundError

TEST_MODULE_NAME: str = "tests"

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^(?:r#)?[A-Za-z_][A-Za-z0-9_]*$")
_OUTER_ATTRIBUTE_RE: re.Pattern[str] = re.compile(r"^\s*#\[.*\]$")


@dataclass(frozen=True, slots=True)
class ModuleDescriptor:
    """Identifies one module to inline.

    :ivar name: Module name as declared (used for the block delimiter).
    :ivar path: Filesystem stem; the backing file is ``<path>.rs`` or
        ``<path>/mod.rs``.
    :ivar import_path: ``::``-joined path the crate's users import it by.
    """

    name: str
    path: pathlib.Path
    import_path: str


@dataclass(slots=True)
class BundleStats:
    """Counters collected during one bundling run."""

    modules_inlined: int = 0
    test_modules_skipped: int = 0
    imports_rewritten: int = 0
    imports_suppressed: int = 0
    lines_dropped: int = 0
    lines_written: int = 0


class LineWriter:
    """The single write path into the output stream.

    :param stream: Open text stream the bundle is written to.
    :param minify: Strip leading/trailing whitespace from every line.
    """

    def __init__(self, stream: TextIO, *, minify: bool) -> None:
        self._stream: TextIO = stream
        self.minify: bool = minify
        self.lines_written: int = 0

    def write(self, line: str) -> None:
        if self.minify is True:
            line = line.strip()
        self._stream.write(line)
        self._stream.write("\n")
        self.lines_written += 1

    def open_block(self, name: str) -> None:
        self.write(f"pub mod {name} {{")

    def close_block(self) -> None:
        self.write("}")


def candidate_files(stem: pathlib.Path) -> tuple[pathlib.Path, pathlib.Path]:
    """Return the backing-file candidates for a module stem, in lookup order.

    :param stem: Module path without extension (e.g. ``src/graph``).
    :returns: ``(src/graph.rs, src/graph/mod.rs)``.
    """

    return (stem.parent / f"{stem.name}.rs", stem / "mod.rs")


def locate_module_file(module: ModuleDescriptor) -> pathlib.Path:
    """Find the file backing ``module``; the first existing candidate wins.

    :param module: Module to locate.
    :returns: Path of the backing file.
    :raises ModuleFileNotFoundError: If no candidate exists.
    """

    candidates: tuple[pathlib.Path, pathlib.Path] = candidate_files(module.path)
    for candidate in candidates:
        if candidate.is_file() is True:
            return candidate
    raise ModuleFileNotFoundError(module=module.import_path, candidates=candidates)


def read_source_lines(path: pathlib.Path) -> list[str]:
    """Read every line of a UTF-8 source file.

    The file is closed before any line is processed, so an error raised deep
    inside a nested module never keeps its ancestors' files open.

    :param path: File to read.
    :returns: The file's lines, line endings included.
    :raises BundleIOError: If the file cannot be read or decoded.
    """

    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.readlines()
    except OSError as e:
        raise BundleIOError(f"Failed to read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise BundleIOError(f"{path} is not valid UTF-8: {e}") from e


def scan_source(path: pathlib.Path, classifier: LineClassifier) -> Iterator[tuple[int, ClassifiedLine]]:
    """Classify a file's lines, yielding ``(line_number, classified)`` pairs.

    A lint attribute split over several lines (``#![allow(`` ... ``)]``) is
    reported as LINT_ATTRIBUTE on every line until its brackets balance.

    :param path: File to scan.
    :param classifier: Classifier for the crate being bundled.
    :raises BundleIOError: If the file cannot be read or decoded.
    """

    open_brackets: int = 0
    for line_number, raw in enumerate(read_source_lines(path), start=1):
        if open_brackets > 0:
            line: str = raw.rstrip()
            open_brackets += line.count("[") - line.count("]")
            yield line_number, ClassifiedLine(kind=LineKind.LINT_ATTRIBUTE, line=line)
            continue

        classified: ClassifiedLine = classifier.classify(raw)
        if classified.kind is LineKind.LINT_ATTRIBUTE:
            open_brackets = classified.line.count("[") - classified.line.count("]")
        yield line_number, classified


class PendingAttributes:
    """Outer attribute lines held back until the item they annotate is known.

    ``#[cfg(test)]`` in front of a skipped ``pub mod tests;`` has to go with
    it; written eagerly it would attach to whatever item follows instead.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []

    def hold(self, classified: ClassifiedLine) -> bool:
        """Hold ``classified`` if it is a single-line outer attribute.

        :returns: ``True`` if the line was held.
        """

        if classified.kind is not LineKind.PASSTHROUGH or _OUTER_ATTRIBUTE_RE.match(classified.line) is None:
            return False
        self._lines.append(classified.line)
        return True

    def flush(self, writer: LineWriter) -> None:
        for line in self._lines:
            writer.write(line)
        self._lines.clear()

    def discard(self) -> int:
        """Drop the held lines along with the item they annotated.

        :returns: Number of lines dropped.
        """

        dropped: int = len(self._lines)
        self._lines.clear()
        return dropped


def expand_module(
    module: ModuleDescriptor,
    *,
    classifier: LineClassifier,
    suppressed: set[str],
    writer: LineWriter,
    stats: BundleStats,
    logger: logging.Logger,
) -> None:
    """Inline one module and, recursively, every module it declares.

    :param module: Module to inline.
    :param classifier: Classifier for the crate being bundled.
    :param suppressed: Run-wide suppression set; ``module.import_path`` is
        added before the body is written.
    :param writer: Output write path.
    :param stats: Run counters.
    :param logger: Logger for progress output.
    :raises ModuleFileNotFoundError: If this or a nested module has no file.
    :raises MalformedDeclarationError: If a nested declaration is not an identifier.
    :raises BundleIOError: If reading a module file fails.
    """

    source_path: pathlib.Path = locate_module_file(module)
    if logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(f"rust-bundler: inlining module {module.import_path} from {source_path}")

    writer.open_block(module.name)
    suppressed.add(module.import_path)
    stats.modules_inlined += 1

    _expand_body(
        source_path,
        child_dir=module.path,
        import_prefix=module.import_path,
        classifier=classifier,
        suppressed=suppressed,
        writer=writer,
        stats=stats,
        logger=logger,
    )
    writer.close_block()


def expand_library_root(
    library_root: pathlib.Path,
    *,
    classifier: LineClassifier,
    suppressed: set[str],
    writer: LineWriter,
    stats: BundleStats,
    logger: logging.Logger,
) -> None:
    """Inline the library root's contents without a wrapping block.

    Sub-modules are resolved relative to the root file's directory and get
    top-level import paths (``pub mod graph;`` in ``src/lib.rs`` becomes
    ``graph``).

    :param library_root: Library root file (usually ``src/lib.rs``).
    :param classifier: Classifier for the crate being bundled.
    :param suppressed: Run-wide suppression set.
    :param writer: Output write path.
    :param stats: Run counters.
    :param logger: Logger for progress output.
    """

    logger.debug(f"rust-bundler: expanding library root {library_root}")
    _expand_body(
        library_root,
        child_dir=library_root.parent,
        import_prefix=None,
        classifier=classifier,
        suppressed=suppressed,
        writer=writer,
        stats=stats,
        logger=logger,
    )


def declared_module(
    classified: ClassifiedLine,
    *,
    parent_dir: pathlib.Path,
    import_prefix: str | None,
    source_path: pathlib.Path,
    line_number: int,
) -> ModuleDescriptor:
    """Build the descriptor for a ``pub mod <name>;`` line.

    :param classified: A MODULE_DECLARATION line.
    :param parent_dir: Directory the declared module's files live in.
    :param import_prefix: Import path of the declaring module, or ``None`` at
        the library root.
    :param source_path: File containing the declaration (for error reporting).
    :param line_number: 1-based line of the declaration.
    :returns: Descriptor for the declared module.
    :raises MalformedDeclarationError: If the name is not a Rust identifier.
    """

    name: str | None = classified.value
    if name is None or _IDENTIFIER_RE.match(name) is None:
        raise MalformedDeclarationError(
            f"module declaration does not name a valid module: {classified.line.strip()!r}",
            path=source_path,
            line_number=line_number,
        )

    # Raw identifiers (r#match) are stored in match.rs.
    file_stem: str = name.removeprefix("r#")
    import_path: str = name if import_prefix is None else f"{import_prefix}::{name}"
    return ModuleDescriptor(name=name, path=parent_dir / file_stem, import_path=import_path)


def _expand_body(
    source_path: pathlib.Path,
    *,
    child_dir: pathlib.Path,
    import_prefix: str | None,
    classifier: LineClassifier,
    suppressed: set[str],
    writer: LineWriter,
    stats: BundleStats,
    logger: logging.Logger,
) -> None:
    """Stream a module file's lines into the writer, recursing on declarations."""

    attributes: PendingAttributes = PendingAttributes()
    for line_number, classified in scan_source(source_path, classifier):
        if classified.kind is LineKind.COMMENT or classified.kind is LineKind.LINT_ATTRIBUTE:
            stats.lines_dropped += 1
            continue

        if attributes.hold(classified) is True:
            continue

        if classified.kind is LineKind.MODULE_DECLARATION:
            child: ModuleDescriptor = declared_module(
                classified,
                parent_dir=child_dir,
                import_prefix=import_prefix,
                source_path=source_path,
                line_number=line_number,
            )
            if child.name == TEST_MODULE_NAME:
                stats.test_modules_skipped += 1
                stats.lines_dropped += attributes.discard()
                logger.debug(f"rust-bundler: skipping test module {child.import_path} ({source_path}:{line_number})")
                continue
            attributes.flush(writer)
            expand_module(
                child,
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
