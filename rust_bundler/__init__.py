"""rust-bundler.

A small build utility that inlines a Rust crate's binary target and library
module tree into a single ``.rs`` file, for judges that accept one file only.
"""

__all__: list[str] = ["__version__"]

__version__: str = "0.1.0"
