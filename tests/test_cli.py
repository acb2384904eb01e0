"""CLI behaviour tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from rust_bundler.cli import _PLAIN_FORMAT, _TRACE_FORMAT, _build_parser, _configure_logging, main
from tests._fixtures.crate_builder import CrateBuilder


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("rust_bundler")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_build_defaults() -> None:
    args = _build_parser().parse_args(["build", "-o", "out.rs"])
    assert args.command == "build"
    assert args.manifest_dir == Path(".")
    assert args.output == Path("out.rs")
    assert args.bin is None
    assert args.minify is False
    assert args.no_rerun_hint is False


def test_build_requires_output() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["build"])


def test_build_from_manifest(crate_builder: CrateBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    crate_builder.write(
        {
            "Cargo.toml": '[package]\nname = "demo"\nversion = "0.1.0"\n',
            "src/main.rs": "extern crate demo;\nuse demo::a;\nfn main() {\n    a::f();\n}\n",
            "src/lib.rs": "pub mod a;\n",
            "src/a.rs": "pub fn f() {}\n",
        }
    )

    code = main(["build", str(crate_builder.path()), "-o", str(crate_builder.output), "--minify"])

    assert code == 0
    assert crate_builder.output.read_text(encoding="utf-8") == (
        "pub mod a {\npub fn f() {}\n}\nfn main() {\na::f();\n}\n"
    )
    captured = capsys.readouterr()
    assert captured.out == f"cargo:rerun-if-changed={crate_builder.output}\n"
    assert "rust-bundler: wrote" in captured.err


def test_build_without_manifest(crate_builder: CrateBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    crate_builder.write({"main.rs": "extern crate algo;\nfn main() {}\n", "lib.rs": "pub fn g() {}\n"})
    root = crate_builder.path()

    code = main(
        [
            "build",
            "-o",
            str(crate_builder.output),
            "--entry",
            str(root / "main.rs"),
            "--lib",
            str(root / "lib.rs"),
            "--crate-name",
            "algo",
            "--no-rerun-hint",
            "-q",
        ]
    )

    assert code == 0
    assert crate_builder.output.read_text(encoding="utf-8") == "pub fn g() {}\nfn main() {}\n"
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


def test_build_failure_exits_nonzero(crate_builder: CrateBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    crate_builder.write(
        {
            "Cargo.toml": '[package]\nname = "demo"\n',
            "src/main.rs": "extern crate demo;\n",
            "src/lib.rs": "pub mod missing;\n",
        }
    )

    code = main(["build", str(crate_builder.path()), "-o", str(crate_builder.output)])

    assert code == 1
    assert crate_builder.output.exists() is False
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Module file not found for 'missing'" in captured.err


def test_missing_manifest_exits_nonzero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["build", str(tmp_path), "-o", str(tmp_path / "out.rs")])
    assert code == 1
    assert "Cargo manifest does not exist" in capsys.readouterr().err


def test_double_verbose_adds_timing_and_level() -> None:
    def formats(logger: logging.Logger) -> list[str | None]:
        return [h.formatter._fmt if h.formatter is not None else None for h in logger.handlers]

    logger = _configure_logging(verbose=2, quiet=0)
    assert logger.level == logging.DEBUG
    assert formats(logger) == [_TRACE_FORMAT]

    logger = _configure_logging(verbose=1, quiet=0)
    assert formats(logger) == [_PLAIN_FORMAT]

    logger = _configure_logging(verbose=2, quiet=1)
    assert logger.level == logging.WARNING
    assert formats(logger) == [_PLAIN_FORMAT]
