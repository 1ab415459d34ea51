"""Service layer — unit synthesis, diagnostics, and the layer checker.

Services may import from domain and infrastructure layers.
They must never import from commands or output.
"""
