"""Domain layer — layer declarations, dependency graph, closures, errors.

This layer depends only on stdlib, pydantic, and networkx.
It must never import from services, infrastructure, commands, or config.
"""
