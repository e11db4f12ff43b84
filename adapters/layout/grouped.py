from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Dict, List

from adapters.layout.ranked import RankedLayoutEngine
from domain.models import Edge, GroupBy, LayoutOptions, LayoutResult, Point, TableNode
from domain.services.graph_structure import connected_components
from domain.services.node_sizing import estimate_size

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "default"


@dataclass(frozen=True)
class GroupTilingConfig:
    origin_x: float = 50.0
    origin_y: float = 50.0
    row_limit: float = 800.0
    gap: float = 100.0
    group_options: LayoutOptions = field(
        default_factory=lambda: LayoutOptions(direction="LR", node_spacing=80, rank_spacing=120)
    )


class GroupedLayoutEngine(RankedLayoutEngine):
    """Lays out each group with the ranked engine and tiles the groups in rows."""

    def __init__(
        self,
        group_by: GroupBy = "relationship",
        tiling: GroupTilingConfig | None = None,
    ) -> None:
        self.tiling = tiling or GroupTilingConfig()
        super().__init__(self.tiling.group_options)
        self.group_by = group_by

    def layout(self, nodes: Sequence[TableNode], edges: Sequence[Edge]) -> LayoutResult:
        return self.hierarchical_group_layout(nodes, edges, self.group_by)

    def hierarchical_group_layout(
        self,
        nodes: Sequence[TableNode],
        edges: Sequence[Edge],
        group_by: GroupBy = "relationship",
    ) -> LayoutResult:
        groups = self.partition(nodes, edges, group_by)
        tiling = self.tiling
        x_offset = tiling.origin_x
        y_offset = tiling.origin_y
        row_height = 0.0
        placed: List[TableNode] = []

        for name, members in groups.items():
            member_ids = {node.id for node in members}
            internal_edges = [
                edge for edge in edges if edge.source in member_ids and edge.target in member_ids
            ]
            group_result = self.auto_layout(members, internal_edges, tiling.group_options)
            group_width = max(
                node.position.x + estimate_size(node).width for node in group_result.nodes
            )
            group_height = max(
                node.position.y + estimate_size(node).height for node in group_result.nodes
            )
            for node in group_result.nodes:
                placed.append(
                    node.model_copy(
                        update={
                            "position": Point(
                                node.position.x + x_offset, node.position.y + y_offset
                            )
                        }
                    )
                )
            logger.debug(
                "Placed group %s (%d nodes) at (%.1f, %.1f)", name, len(members), x_offset, y_offset
            )

            row_height = max(row_height, group_height)
            if x_offset + group_width > tiling.row_limit:
                x_offset = tiling.origin_x
                y_offset += row_height + tiling.gap
                row_height = 0.0
            else:
                x_offset += group_width + tiling.gap

        return LayoutResult(nodes=placed, edges=list(edges))

    def partition(
        self,
        nodes: Sequence[TableNode],
        edges: Sequence[Edge],
        group_by: GroupBy = "relationship",
    ) -> Dict[str, List[TableNode]]:
        groups: Dict[str, List[TableNode]] = {}
        if group_by == "schema":
            for node in nodes:
                schema = node.data.schema_name or DEFAULT_SCHEMA
                groups.setdefault(schema, []).append(node)
            return groups

        component_of: Dict[str, int] = {}
        for idx, component in enumerate(connected_components(nodes, edges)):
            for node_id in component:
                component_of[node_id] = idx
        for node in nodes:
            groups.setdefault(f"group-{component_of[node.id]}", []).append(node)
        return groups
