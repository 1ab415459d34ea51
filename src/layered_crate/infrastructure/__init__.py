"""Infrastructure layer — Rust sources, Cargo manifests, scratch workspace, cargo.

This layer depends on stdlib, third-party libs, and the domain error types.
It must never import from services, commands, or output.
"""
