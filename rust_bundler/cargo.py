"""Crate layout resolution.

This module is intentionally small and "pragmatic":

- It reads ``Cargo.toml`` to find the library root, the binary target and
  the name the binary uses to refer to the library.
- Every value can be overridden, and when all of them are, no manifest is
  needed at all.
"""

from dataclasses import dataclass
import functools
import pathlib
import tomllib
from typing import Any

from rust_bundler.errors import CargoManifestError

DEFAULT_LIBRARY_ROOT: str = "src/lib.rs"
DEFAULT_ENTRY: str = "src/main.rs"


@dataclass(frozen=True, slots=True)
class BundleConfig:
    """Everything a bundling run needs.

    :ivar crate_name: Library crate name as used in ``extern crate``/``use``.
    :ivar entry_path: Binary target source file.
    :ivar library_root: Library root source file.
    :ivar output_path: Bundle output path.
    :ivar minify: Strip line-local whitespace from passthrough lines.
    """

    crate_name: str
    entry_path: pathlib.Path
    library_root: pathlib.Path
    output_path: pathlib.Path
    minify: bool


def resolve_bundle_config(
    *,
    manifest_dir: pathlib.Path,
    output_path: pathlib.Path,
    bin_name: str | None = None,
    entry_override: pathlib.Path | None = None,
    library_override: pathlib.Path | None = None,
    crate_name_override: str | None = None,
    minify: bool = False,
) -> BundleConfig:
    """Resolve a crate directory plus user overrides into a :class:`~BundleConfig`.

    :param manifest_dir: Directory holding ``Cargo.toml``.
    :param output_path: Bundle output path.
    :param bin_name: Optional ``[[bin]]`` target name; defaults to ``src/main.rs``.
    :param entry_override: Optional explicit entry file.
    :param library_override: Optional explicit library root.
    :param crate_name_override: Optional explicit crate name.
    :param minify: Minify passthrough lines.
    :returns: Resolved config.
    :raises CargoManifestError: If the manifest is needed but missing or invalid.
    """

    @functools.cache
    def manifest() -> dict[str, Any]:
        """Load ``Cargo.toml`` the first time a value has to come from it."""

        return load_manifest(manifest_dir / "Cargo.toml")

    crate_name: str
    if crate_name_override is not None:
        crate_name = crate_name_override
    else:
        crate_name = _crate_name_from_manifest(manifest())

    library_root: pathlib.Path
    if library_override is not None:
        library_root = library_override
    else:
        library_root = manifest_dir / _library_path_from_manifest(manifest())

    entry_path: pathlib.Path
    if entry_override is not None:
        entry_path = entry_override
    else:
        entry_path = manifest_dir / _entry_path_from_manifest(manifest(), bin_name=bin_name)

    return BundleConfig(
        crate_name=crate_name,
        entry_path=entry_path,
        library_root=library_root,
        output_path=output_path,
        minify=minify,
    )


def load_manifest(manifest_path: pathlib.Path) -> dict[str, Any]:
    """Read and parse ``Cargo.toml``.

    :param manifest_path: Path to the manifest.
    :returns: Parsed TOML document.
    :raises CargoManifestError: If the file is missing or not valid TOML.
    """

    if manifest_path.is_file() is False:
        raise CargoManifestError(f"Cargo manifest does not exist: {manifest_path}")

    try:
        with open(manifest_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise CargoManifestError(f"Invalid Cargo manifest {manifest_path}: {e}") from e
    except OSError as e:
        raise CargoManifestError(f"Failed to read Cargo manifest {manifest_path}: {e}") from e


def normalize_crate_name(name: str) -> str:
    """Turn a package name into the identifier Rust code uses for it.

    :param name: Package name (may contain ``-``).
    :returns: Crate name with ``-`` replaced by ``_``.
    """

    return name.replace("-", "_")


def _crate_name_from_manifest(manifest: dict[str, Any]) -> str:
    """Pick the library crate name: ``[lib].name``, else ``[package].name``."""

    lib: dict[str, Any] = _table(manifest, "lib")
    lib_name: Any = lib.get("name")
    if isinstance(lib_name, str) and lib_name != "":
        return normalize_crate_name(lib_name)

    package: dict[str, Any] = _table(manifest, "package")
    package_name: Any = package.get("name")
    if isinstance(package_name, str) and package_name != "":
        return normalize_crate_name(package_name)

    raise CargoManifestError("Cargo manifest has no [package].name; pass --crate-name.")


def _library_path_from_manifest(manifest: dict[str, Any]) -> str:
    lib: dict[str, Any] = _table(manifest, "lib")
    path: Any = lib.get("path")
    if isinstance(path, str) and path != "":
        return path
    return DEFAULT_LIBRARY_ROOT


def _entry_path_from_manifest(manifest: dict[str, Any], *, bin_name: str | None) -> str:
    """Find the binary target's source path.

    :param manifest: Parsed manifest.
    :param bin_name: ``[[bin]]`` name, or ``None`` for the default binary.
    :returns: Entry path relative to the manifest directory.
    :raises CargoManifestError: If ``bin_name`` names no target.
    """

    if bin_name is None:
        return DEFAULT_ENTRY

    bins: Any = manifest.get("bin", [])
    if not isinstance(bins, list):
        raise CargoManifestError("Cargo manifest [[bin]] must be an array of tables.")

    for target in bins:
        if isinstance(target, dict) and target.get("name") == bin_name:
            path: Any = target.get("path")
            if isinstance(path, str) and path != "":
                return path
            return f"src/bin/{bin_name}.rs"

    package: dict[str, Any] = _table(manifest, "package")
    if package.get("name") == bin_name:
        return DEFAULT_ENTRY

    raise CargoManifestError(f"No [[bin]] target named {bin_name!r} in Cargo manifest.")


def _table(manifest: dict[str, Any], key: str) -> dict[str, Any]:
    value: Any = manifest.get(key, {})
    if not isinstance(value, dict):
        raise CargoManifestError(f"Cargo manifest [{key}] must be a table.")
    return value
