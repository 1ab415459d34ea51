"""layered-crate — enforce internal module layering in a Rust crate."""

__version__ = "0.3.3"
