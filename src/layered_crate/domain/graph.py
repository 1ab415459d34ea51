"""DependencyGraph — validated, ordered view of the declared layers.

Built once per run from the Layerfile and read-only afterwards.  Edges
point from a layer to the layers it depends on.  Every decision point
iterates names in sorted order so errors and orderings are reproducible.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TypeAlias

import networkx as nx

from layered_crate.domain.errors import CycleError, DanglingReferenceError
from layered_crate.domain.layerfile import Layer

logger = logging.getLogger(__name__)

_Graph: TypeAlias = nx.DiGraph


class DependencyGraph:
    """Layer dependency graph with a consumer-first build order.

    Attributes:
        top_down_order: Layers such that every layer comes before all of its
            (transitive) dependencies.  The last entries depend on nothing.
    """

    def __init__(self, graph: _Graph, top_down_order: list[str]) -> None:
        self._graph = graph
        self.top_down_order: tuple[str, ...] = tuple(top_down_order)

    @classmethod
    def build(cls, layers: Mapping[str, Layer]) -> DependencyGraph:
        """Validate *layers* and compute the build order.

        Raises:
            DanglingReferenceError: a ``depends-on`` or ``impl`` name is not
                a declared layer.
            CycleError: the dependencies contain a cycle.
        """
        logger.debug("building dependency graph from %d layers", len(layers))
        adjacency = {name: tuple(sorted(layers[name].depends_on)) for name in sorted(layers)}

        _check_impl_targets(layers)
        _check_circular_dependencies(adjacency, checked=set())
        logger.debug("no circular dependencies found")

        graph: _Graph = nx.DiGraph()
        graph.add_nodes_from(adjacency)
        for name, deps in adjacency.items():
            graph.add_edges_from((name, dep) for dep in deps)

        bottom_up = _bottom_up_order(graph)
        logger.debug("bottom-up order: %s", bottom_up)
        return cls(graph, list(reversed(bottom_up)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def bottom_up_order(self) -> tuple[str, ...]:
        return tuple(reversed(self.top_down_order))

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Direct dependencies of *name*, sorted."""
        return tuple(sorted(self._graph.successors(name)))

    def transitive_dependencies(self, name: str) -> frozenset[str]:
        """Every layer reachable from *name* through dependency edges."""
        return frozenset(nx.descendants(self._graph, name))

    def adjacency(self) -> dict[str, tuple[str, ...]]:
        """``name -> sorted direct dependencies`` for every layer."""
        return {name: self.dependencies(name) for name in sorted(self._graph)}


def _check_impl_targets(layers: Mapping[str, Layer]) -> None:
    for name in sorted(layers):
        for target in sorted(layers[name].impl_of):
            if target not in layers:
                raise DanglingReferenceError(target, [name, target])


def _check_circular_dependencies(
    adjacency: Mapping[str, tuple[str, ...]],
    *,
    checked: set[str],
) -> None:
    """Depth-first walk from every layer with an explicit path stack.

    *checked* holds layers whose subtree has already been walked; it is
    shared across roots so each layer is expanded at most once.
    """
    for root in adjacency:
        if root in checked:
            continue
        logger.debug("checking circular dependencies for layer `%s`", root)
        checked.add(root)
        path = [root]
        pending = [iter(adjacency[root])]
        while pending:
            dep = next(pending[-1], None)
            if dep is None:
                pending.pop()
                path.pop()
                continue
            if dep in path:
                raise CycleError([*path, dep])
            if dep in checked:
                continue
            if dep not in adjacency:
                raise DanglingReferenceError(dep, [*path, dep])
            checked.add(dep)
            path.append(dep)
            pending.append(iter(adjacency[dep]))


def _bottom_up_order(graph: _Graph) -> list[str]:
    """Repeatedly prune the layers with no unresolved dependencies.

    Each pruning round is one topological generation of the reversed
    graph (dependency -> dependent); names within a round are sorted.
    """
    order: list[str] = []
    for generation in nx.topological_generations(graph.reverse(copy=False)):
        order.extend(sorted(generation))
    return order
