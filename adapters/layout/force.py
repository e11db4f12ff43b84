from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Dict, List

from domain.models import Edge, LayoutResult, Size, TableNode
from domain.ports.layout import LayoutEngine


@dataclass(frozen=True)
class ForceConfig:
    canvas: Size = Size(1200, 800)
    repulsion: float = 5000.0
    attraction: float = 0.01
    step: float = 0.1
    min_x: float = 50.0
    min_y: float = 50.0
    right_inset: float = 200.0
    bottom_inset: float = 150.0


class ForceDirectedLayoutEngine(LayoutEngine):
    """Spring-electrical layout advanced by one explicit Euler step per call.

    No velocity is kept between calls; callers run several steps to converge.
    """

    def __init__(self, config: ForceConfig | None = None) -> None:
        self.config = config or ForceConfig()

    def layout(self, nodes: Sequence[TableNode], edges: Sequence[Edge]) -> LayoutResult:
        return self.force_directed_layout(
            nodes, edges, self.config.canvas.width, self.config.canvas.height
        )

    def force_directed_layout(
        self,
        nodes: Sequence[TableNode],
        edges: Sequence[Edge],
        width: float,
        height: float,
    ) -> LayoutResult:
        cfg = self.config
        forces: List[List[float]] = [[0.0, 0.0] for _ in nodes]

        for i in range(len(nodes)):
            for j in range(i + 1, len(nodes)):
                a = nodes[i].position
                b = nodes[j].position
                dx = a.x - b.x
                dy = a.y - b.y
                distance = math.hypot(dx, dy) or 1.0
                force = cfg.repulsion / (distance * distance)
                fx = dx / distance * force
                fy = dy / distance * force
                forces[i][0] += fx
                forces[i][1] += fy
                forces[j][0] -= fx
                forces[j][1] -= fy

        index_by_id: Dict[str, int] = {}
        for idx, node in enumerate(nodes):
            index_by_id.setdefault(node.id, idx)
        for edge in edges:
            source_idx = index_by_id.get(edge.source)
            target_idx = index_by_id.get(edge.target)
            if source_idx is None or target_idx is None:
                continue
            source = nodes[source_idx].position
            target = nodes[target_idx].position
            dx = target.x - source.x
            dy = target.y - source.y
            distance = math.hypot(dx, dy) or 1.0
            force = distance * cfg.attraction
            fx = dx / distance * force
            fy = dy / distance * force
            forces[source_idx][0] += fx
            forces[source_idx][1] += fy
            forces[target_idx][0] -= fx
            forces[target_idx][1] -= fy

        max_x = width - cfg.right_inset
        max_y = height - cfg.bottom_inset
        moved: List[TableNode] = []
        for node, (fx, fy) in zip(nodes, forces):
            x = node.position.x + fx * cfg.step
            y = node.position.y + fy * cfg.step
            moved.append(
                node.moved_to(
                    max(cfg.min_x, min(max_x, x)),
                    max(cfg.min_y, min(max_y, y)),
                )
            )
        return LayoutResult(nodes=moved, edges=list(edges))
