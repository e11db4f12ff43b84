from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from domain.models import (
    Direction,
    Edge,
    LayoutOptions,
    LayoutResult,
    Point,
    PortSide,
    Size,
    TableNode,
)
from domain.ports.layout import LayoutEngine
from domain.services.edge_styling import style_edges_by_distance
from domain.services.graph_structure import GraphData, build_directed_graph
from domain.services.node_sizing import estimate_size

logger = logging.getLogger(__name__)

_VIRTUAL_PREFIX = "__virtual__"

# (target side, source side) per direction.
_PORT_SIDES: Dict[str, Tuple[PortSide, PortSide]] = {
    "TB": ("top", "bottom"),
    "BT": ("bottom", "top"),
    "LR": ("left", "right"),
    "RL": ("right", "left"),
}


def port_sides(direction: Direction) -> Tuple[PortSide, PortSide]:
    return _PORT_SIDES.get(direction, _PORT_SIDES["TB"])


@dataclass
class _LayeredGraph:
    layers: List[List[str]]
    successors: Dict[str, List[str]]
    predecessors: Dict[str, List[str]]
    sizes: Dict[str, Size]
    virtual: set[str] = field(default_factory=set)

    def separation(self, left: str, right: str, options: LayoutOptions, horizontal: bool) -> float:
        gaps = [
            options.edge_spacing if node_id in self.virtual else options.node_spacing
            for node_id in (left, right)
        ]
        return (
            self.cross_size(left, horizontal) / 2
            + self.cross_size(right, horizontal) / 2
            + sum(gaps) / 2
        )

    def cross_size(self, node_id: str, horizontal: bool) -> float:
        size = self.sizes[node_id]
        return size.height if horizontal else size.width

    def rank_size(self, node_id: str, horizontal: bool) -> float:
        size = self.sizes[node_id]
        return size.width if horizontal else size.height


class RankedLayoutEngine(LayoutEngine):
    """Layered layout: cycle breaking, ranking, barycenter ordering, packing."""

    def __init__(self, options: LayoutOptions | None = None) -> None:
        self.options = options or LayoutOptions()

    def layout(self, nodes: Sequence[TableNode], edges: Sequence[Edge]) -> LayoutResult:
        return self.auto_layout(nodes, edges)

    def auto_layout(
        self,
        nodes: Sequence[TableNode],
        edges: Sequence[Edge],
        options: LayoutOptions | None = None,
    ) -> LayoutResult:
        opts = options or self.options
        if not nodes:
            return LayoutResult(nodes=[], edges=list(edges))

        graph = build_directed_graph(nodes, edges)
        sizes: Dict[str, Size] = {}
        for node in nodes:
            sizes.setdefault(node.id, estimate_size(node))
        arcs = self._break_cycles(graph)
        ranks = self._rank(graph, arcs)
        layered = self._build_layers(graph, arcs, ranks, sizes)
        self._order_layers(layered, opts.ordering_sweeps)
        centers = self._assign_coordinates(layered, opts)

        target_side, source_side = port_sides(opts.direction)
        min_x = min(centers[node_id][0] - sizes[node_id].width / 2 for node_id in graph.vertices)
        min_y = min(centers[node_id][1] - sizes[node_id].height / 2 for node_id in graph.vertices)
        positioned: List[TableNode] = []
        for node in nodes:
            cx, cy = centers[node.id]
            size = sizes[node.id]
            positioned.append(
                node.model_copy(
                    update={
                        "position": Point(
                            cx - size.width / 2 - min_x + opts.margin,
                            cy - size.height / 2 - min_y + opts.margin,
                        ),
                        "target_position": target_side,
                        "source_position": source_side,
                    }
                )
            )

        logger.debug(
            "Ranked layout placed %d nodes on %d ranks (direction=%s)",
            len(positioned),
            len(layered.layers),
            opts.direction,
        )
        styled = (
            style_edges_by_distance(edges, positioned)
            if opts.minimize_edge_crossings
            else list(edges)
        )
        return LayoutResult(nodes=positioned, edges=styled)

    def assign_ranks(self, nodes: Sequence[TableNode], edges: Sequence[Edge]) -> Dict[str, int]:
        graph = build_directed_graph(nodes, edges)
        return self._rank(graph, self._break_cycles(graph))

    def _break_cycles(self, graph: GraphData) -> List[Tuple[str, str]]:
        # Iterative DFS; back edges are reversed so the arc set becomes acyclic.
        state: Dict[str, int] = {node_id: 0 for node_id in graph.vertices}
        arcs: List[Tuple[str, str]] = []
        seen: set[Tuple[str, str]] = set()

        def add(source: str, target: str) -> None:
            if (source, target) not in seen:
                seen.add((source, target))
                arcs.append((source, target))

        for root in graph.vertices:
            if state[root]:
                continue
            state[root] = 1
            stack = [(root, iter(graph.adjacency[root]))]
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    state[node] = 2
                    stack.pop()
                    continue
                if state[child] == 1:
                    add(child, node)
                    continue
                add(node, child)
                if state[child] == 0:
                    state[child] = 1
                    stack.append((child, iter(graph.adjacency[child])))
        return arcs

    def _rank(self, graph: GraphData, arcs: List[Tuple[str, str]]) -> Dict[str, int]:
        successors: Dict[str, List[str]] = {node_id: [] for node_id in graph.vertices}
        predecessors: Dict[str, List[str]] = {node_id: [] for node_id in graph.vertices}
        for source, target in arcs:
            successors[source].append(target)
            predecessors[target].append(source)

        indegree = {node_id: len(predecessors[node_id]) for node_id in graph.vertices}
        queue = deque(node_id for node_id in graph.vertices if indegree[node_id] == 0)
        order: List[str] = []
        ranks: Dict[str, int] = {}
        while queue:
            node = queue.popleft()
            order.append(node)
            ranks[node] = max((ranks[pred] + 1 for pred in predecessors[node]), default=0)
            for child in successors[node]:
                indegree[child] -= 1
                if indegree[child] == 0:
                    queue.append(child)

        # Pull sources down next to their closest successor.
        for node in reversed(order):
            if predecessors[node] or not successors[node]:
                continue
            ranks[node] = min(ranks[child] for child in successors[node]) - 1
        return ranks

    def _build_layers(
        self,
        graph: GraphData,
        arcs: List[Tuple[str, str]],
        ranks: Dict[str, int],
        sizes: Dict[str, Size],
    ) -> _LayeredGraph:
        layer_count = max(ranks.values(), default=-1) + 1
        layers: List[List[str]] = [[] for _ in range(layer_count)]
        for node_id in graph.vertices:
            layers[ranks[node_id]].append(node_id)

        layered = _LayeredGraph(
            layers=layers,
            successors={node_id: [] for node_id in graph.vertices},
            predecessors={node_id: [] for node_id in graph.vertices},
            sizes={node_id: sizes[node_id] for node_id in graph.vertices},
        )

        for source, target in arcs:
            chain = [source]
            for rank in range(ranks[source] + 1, ranks[target]):
                virtual_id = f"{_VIRTUAL_PREFIX}{source}->{target}::{rank}"
                layered.virtual.add(virtual_id)
                layered.sizes[virtual_id] = Size(0.0, 0.0)
                layered.successors[virtual_id] = []
                layered.predecessors[virtual_id] = []
                layers[rank].append(virtual_id)
                chain.append(virtual_id)
            chain.append(target)
            for upper, lower in zip(chain, chain[1:]):
                layered.successors[upper].append(lower)
                layered.predecessors[lower].append(upper)
        return layered

    def _order_layers(self, layered: _LayeredGraph, sweeps: int) -> None:
        best = [list(layer) for layer in layered.layers]
        best_crossings = self._count_crossings(best, layered.successors)
        current = [list(layer) for layer in best]
        for sweep in range(sweeps):
            if sweep % 2 == 0:
                for rank in range(1, len(current)):
                    current[rank] = self._barycenter_sort(
                        current[rank], current[rank - 1], layered.predecessors
                    )
            else:
                for rank in range(len(current) - 2, -1, -1):
                    current[rank] = self._barycenter_sort(
                        current[rank], current[rank + 1], layered.successors
                    )
            crossings = self._count_crossings(current, layered.successors)
            if crossings < best_crossings:
                best = [list(layer) for layer in current]
                best_crossings = crossings
        layered.layers = best

    def _barycenter_sort(
        self, layer: List[str], fixed: List[str], neighbors: Dict[str, List[str]]
    ) -> List[str]:
        fixed_index = {node_id: idx for idx, node_id in enumerate(fixed)}

        def sort_key(item: Tuple[int, str]) -> Tuple[float, int]:
            idx, node_id = item
            linked = [fixed_index[n] for n in neighbors.get(node_id, []) if n in fixed_index]
            if not linked:
                return (float(idx), idx)
            return (sum(linked) / len(linked), idx)

        return [node_id for _, node_id in sorted(enumerate(layer), key=sort_key)]

    def _count_crossings(
        self, layers: List[List[str]], successors: Dict[str, List[str]]
    ) -> int:
        crossings = 0
        for upper, lower in zip(layers, layers[1:]):
            lower_index = {node_id: idx for idx, node_id in enumerate(lower)}
            pairs = sorted(
                (upper_idx, lower_index[child])
                for upper_idx, node_id in enumerate(upper)
                for child in successors.get(node_id, [])
                if child in lower_index
            )
            for i, (_, first) in enumerate(pairs):
                crossings += sum(1 for _, second in pairs[i + 1 :] if second < first)
        return crossings

    def _assign_coordinates(
        self, layered: _LayeredGraph, options: LayoutOptions
    ) -> Dict[str, Tuple[float, float]]:
        horizontal = options.direction in {"LR", "RL"}
        cross: Dict[str, float] = {}
        for layer in layered.layers:
            offset = 0.0
            for idx, node_id in enumerate(layer):
                if idx == 0:
                    offset = layered.cross_size(node_id, horizontal) / 2
                else:
                    offset += layered.separation(layer[idx - 1], node_id, options, horizontal)
                cross[node_id] = offset
            if options.align_nodes and layer:
                center = (cross[layer[0]] + cross[layer[-1]]) / 2
                for node_id in layer:
                    cross[node_id] -= center

        if options.align_nodes:
            for rank in range(1, len(layered.layers)):
                self._pull_towards(
                    layered, layered.layers[rank], layered.predecessors, cross, options, horizontal
                )
            for rank in range(len(layered.layers) - 2, -1, -1):
                self._pull_towards(
                    layered, layered.layers[rank], layered.successors, cross, options, horizontal
                )

        rank_position: List[float] = []
        previous_extent = 0.0
        for rank, layer in enumerate(layered.layers):
            extent = max((layered.rank_size(node_id, horizontal) for node_id in layer), default=0.0)
            if rank == 0:
                rank_position.append(extent / 2)
            else:
                rank_position.append(
                    rank_position[-1] + previous_extent / 2 + options.rank_spacing + extent / 2
                )
            previous_extent = extent

        centers: Dict[str, Tuple[float, float]] = {}
        for rank, layer in enumerate(layered.layers):
            along = rank_position[rank]
            if options.direction in {"BT", "RL"}:
                along = -along
            for node_id in layer:
                if node_id in layered.virtual:
                    continue
                centers[node_id] = (along, cross[node_id]) if horizontal else (cross[node_id], along)
        return centers

    def _pull_towards(
        self,
        layered: _LayeredGraph,
        layer: List[str],
        neighbors: Dict[str, List[str]],
        cross: Dict[str, float],
        options: LayoutOptions,
        horizontal: bool,
    ) -> None:
        if not layer:
            return
        desired: List[float] = []
        for node_id in layer:
            linked = [cross[n] for n in neighbors.get(node_id, []) if n in cross]
            desired.append(sum(linked) / len(linked) if linked else cross[node_id])

        gaps = [
            layered.separation(left, right, options, horizontal)
            for left, right in zip(layer, layer[1:])
        ]
        forward = list(desired)
        for idx in range(1, len(layer)):
            forward[idx] = max(forward[idx], forward[idx - 1] + gaps[idx - 1])
        backward = list(desired)
        for idx in range(len(layer) - 2, -1, -1):
            backward[idx] = min(backward[idx], backward[idx + 1] - gaps[idx])
        for idx, node_id in enumerate(layer):
            cross[node_id] = (forward[idx] + backward[idx]) / 2
