"""Errors raised while bundling.

Every failure aborts the whole run; there is no partial-success mode.
"""

import pathlib


class BundleError(RuntimeError):
    """Raised when bundling fails."""


class SourceFileNotFoundError(BundleError):
    """Raised when the entry file or the library root does not exist."""

    def __init__(self, message: str, *, path: pathlib.Path) -> None:
        super().__init__(message)
        self.path: pathlib.Path = path


class ModuleFileNotFoundError(SourceFileNotFoundError):
    """Raised when a declared module has no backing file under either layout.

    :ivar module: Import path of the module (e.g. ``graph::dijkstra``).
    :ivar candidates: Every path that was tried, in lookup order.
    """

    def __init__(self, *, module: str, candidates: tuple[pathlib.Path, ...]) -> None:
        tried: str = ", ".join(str(c) for c in candidates)
        super().__init__(
            f"Module file not found for {module!r} (tried: {tried})",
            path=candidates[0],
        )
        self.module: str = module
        self.candidates: tuple[pathlib.Path, ...] = candidates


class MalformedDeclarationError(BundleError):
    """Raised when a module declaration names something that cannot be a file.

    :ivar path: File containing the declaration.
    :ivar line_number: 1-based line number of the declaration.
    """

    def __init__(self, message: str, *, path: pathlib.Path, line_number: int) -> None:
        super().__init__(f"{path}:{line_number}: {message}")
        self.path: pathlib.Path = path
        self.line_number: int = line_number


class BundleIOError(BundleError):
    """Raised when reading an input or writing the bundle fails."""


class CargoManifestError(BundleError):
    """Raised when ``Cargo.toml`` cannot be used to locate the crate's sources."""
