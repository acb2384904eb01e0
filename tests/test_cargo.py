"""Tests for rust_bundler.cargo."""

from __future__ import annotations

from pathlib import Path

import pytest

from rust_bundler.cargo import normalize_crate_name, resolve_bundle_config
from rust_bundler.errors import CargoManifestError


def _manifest(root: Path, content: str) -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / "Cargo.toml").write_text(content, encoding="utf-8")


def test_defaults_come_from_package_section(tmp_path: Path) -> None:
    _manifest(tmp_path, '[package]\nname = "two-sum"\nversion = "0.1.0"\n')

    config = resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "out.rs")

    assert config.crate_name == "two_sum"
    assert config.entry_path == tmp_path / "src" / "main.rs"
    assert config.library_root == tmp_path / "src" / "lib.rs"
    assert config.output_path == tmp_path / "out.rs"
    assert config.minify is False


def test_lib_section_overrides_name_and_path(tmp_path: Path) -> None:
    _manifest(
        tmp_path,
        '[package]\nname = "pkg"\n\n[lib]\nname = "algo-lib"\npath = "lib/root.rs"\n',
    )

    config = resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "out.rs", minify=True)

    assert config.crate_name == "algo_lib"
    assert config.library_root == tmp_path / "lib" / "root.rs"
    assert config.minify is True


def test_named_bin_target(tmp_path: Path) -> None:
    _manifest(
        tmp_path,
        '[package]\nname = "pkg"\n\n'
        '[[bin]]\nname = "a"\npath = "problems/a.rs"\n\n'
        '[[bin]]\nname = "b"\n',
    )

    a = resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "a.rs", bin_name="a")
    b = resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "b.rs", bin_name="b")

    assert a.entry_path == tmp_path / "problems" / "a.rs"
    assert b.entry_path == tmp_path / "src" / "bin" / "b.rs"


def test_unknown_bin_target(tmp_path: Path) -> None:
    _manifest(tmp_path, '[package]\nname = "pkg"\n')
    with pytest.raises(CargoManifestError, match="'nope'"):
        resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "out.rs", bin_name="nope")


def test_overrides_skip_the_manifest(tmp_path: Path) -> None:
    config = resolve_bundle_config(
        manifest_dir=tmp_path / "nowhere",
        output_path=tmp_path / "out.rs",
        entry_override=tmp_path / "main.rs",
        library_override=tmp_path / "lib.rs",
        crate_name_override="demo",
    )
    assert config.crate_name == "demo"
    assert config.entry_path == tmp_path / "main.rs"


def test_missing_manifest(tmp_path: Path) -> None:
    with pytest.raises(CargoManifestError, match="does not exist"):
        resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "out.rs")


def test_invalid_manifest(tmp_path: Path) -> None:
    _manifest(tmp_path, "[package\nname = \n")
    with pytest.raises(CargoManifestError, match="Invalid Cargo manifest"):
        resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "out.rs")


def test_manifest_without_package_name(tmp_path: Path) -> None:
    _manifest(tmp_path, "[workspace]\nmembers = []\n")
    with pytest.raises(CargoManifestError, match="--crate-name"):
        resolve_bundle_config(manifest_dir=tmp_path, output_path=tmp_path / "out.rs")


def test_normalize_crate_name() -> None:
    assert normalize_crate_name("my-crate-name") == "my_crate_name"
    assert normalize_crate_name("plain") == "plain"


def test_manifest_is_read_only_for_missing_values(tmp_path: Path) -> None:
    _manifest(tmp_path, '[package]\nname = "pkg"\n\n[[bin]]\nname = "solve"\npath = "solve.rs"\n')

    config = resolve_bundle_config(
        manifest_dir=tmp_path,
        output_path=tmp_path / "out.rs",
        bin_name="solve",
        library_override=tmp_path / "elsewhere.rs",
        crate_name_override="algo",
    )

    assert config.crate_name == "algo"
    assert config.library_root == tmp_path / "elsewhere.rs"
    assert config.entry_path == tmp_path / "solve.rs"


def test_partial_overrides_still_need_a_manifest(tmp_path: Path) -> None:
    with pytest.raises(CargoManifestError, match="does not exist"):
        resolve_bundle_config(
            manifest_dir=tmp_path,
            output_path=tmp_path / "out.rs",
            crate_name_override="algo",
        )
