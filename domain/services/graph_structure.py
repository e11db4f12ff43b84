from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from domain.models import DiagramStats, Edge, TableNode


@dataclass(frozen=True)
class GraphData:
    vertices: list[str]
    adjacency: dict[str, list[str]]

    @property
    def arcs(self) -> list[tuple[str, str]]:
        return [(source, target) for source in self.vertices for target in self.adjacency[source]]


def node_ids_in_order(nodes: Sequence[TableNode]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for node in nodes:
        if node.id in seen:
            continue
        seen.add(node.id)
        ordered.append(node.id)
    return ordered


def build_directed_graph(nodes: Sequence[TableNode], edges: Sequence[Edge]) -> GraphData:
    """Directed graph over known node ids.

    Dangling edges, self-loops and parallel arcs are dropped.
    """
    vertices = node_ids_in_order(nodes)
    known = set(vertices)
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in vertices}
    seen: set[tuple[str, str]] = set()
    for edge in edges:
        if edge.source not in known or edge.target not in known:
            continue
        if edge.source == edge.target:
            continue
        arc = (edge.source, edge.target)
        if arc in seen:
            continue
        seen.add(arc)
        adjacency[edge.source].append(edge.target)
    return GraphData(vertices=vertices, adjacency=adjacency)


def connected_components(nodes: Sequence[TableNode], edges: Sequence[Edge]) -> list[list[str]]:
    vertices = node_ids_in_order(nodes)
    order = {node_id: idx for idx, node_id in enumerate(vertices)}
    undirected: dict[str, list[str]] = {node_id: [] for node_id in vertices}
    for edge in edges:
        if edge.source not in order or edge.target not in order:
            continue
        undirected[edge.source].append(edge.target)
        undirected[edge.target].append(edge.source)

    visited: set[str] = set()
    components: list[list[str]] = []
    for start in vertices:
        if start in visited:
            continue
        component: list[str] = []
        stack = [start]
        while stack:
            node = stack.pop()
            if node in visited:
                continue
            visited.add(node)
            component.append(node)
            stack.extend(
                neighbor for neighbor in reversed(undirected[node]) if neighbor not in visited
            )
        component.sort(key=order.__getitem__)
        components.append(component)
    return components


def prune_edges(nodes: Sequence[TableNode], edges: Sequence[Edge]) -> list[Edge]:
    """Drop duplicate edges (same endpoints and handles) and edges to unknown nodes."""
    known = {node.id for node in nodes}
    seen: set[tuple[str, str, str | None, str | None]] = set()
    kept: list[Edge] = []
    for edge in edges:
        key = (edge.source, edge.target, edge.source_handle, edge.target_handle)
        if key in seen:
            continue
        seen.add(key)
        if edge.source in known and edge.target in known:
            kept.append(edge)
    return kept


def compute_diagram_stats(
    nodes: Sequence[TableNode],
    edges: Sequence[Edge],
    memory_probe: Callable[[], float | None] | None = None,
) -> DiagramStats:
    return DiagramStats(
        total_nodes=len(nodes),
        total_edges=len(edges),
        total_columns=sum(len(node.data.columns) for node in nodes),
        memory_usage=memory_probe() if memory_probe else None,
    )
