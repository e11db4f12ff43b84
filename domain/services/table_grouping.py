from __future__ import annotations

import math
from collections.abc import Sequence

from domain.models import Point, TableGroup, TableNode

GROUP_PALETTE = (
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#8b5cf6",
    "#06b6d4",
    "#84cc16",
    "#f97316",
    "#ec4899",
    "#6366f1",
)
REMAINDER_GROUP_ID = "group-remaining"
REMAINDER_GROUP_NAME = "Other Tables"
REMAINDER_GROUP_COLOR = "#94a3b8"
CLUSTER_DISTANCE = 500.0
MIN_NODES_FOR_GROUPING = 20


def group_color(index: int) -> str:
    return GROUP_PALETTE[index % len(GROUP_PALETTE)]


def node_distance(first: TableNode, second: TableNode) -> float:
    return math.hypot(first.position.x - second.position.x, first.position.y - second.position.y)


def group_center(nodes: Sequence[TableNode]) -> Point:
    if not nodes:
        return Point(0.0, 0.0)
    return Point(
        sum(node.position.x for node in nodes) / len(nodes),
        sum(node.position.y for node in nodes) / len(nodes),
    )


def cluster_by_proximity(
    nodes: Sequence[TableNode], max_distance: float = CLUSTER_DISTANCE
) -> list[list[TableNode]]:
    """Greedy seed clustering.

    Each unvisited node seeds a cluster and claims every unvisited node within
    `max_distance` of the seed itself. Members are not guaranteed to be close
    to one another.
    """
    clusters: list[list[TableNode]] = []
    visited: set[str] = set()
    for seed in nodes:
        if seed.id in visited:
            continue
        visited.add(seed.id)
        cluster = [seed]
        for other in nodes:
            if other.id in visited:
                continue
            if node_distance(seed, other) <= max_distance:
                cluster.append(other)
                visited.add(other.id)
        clusters.append(cluster)
    return clusters


def build_table_groups(
    nodes: Sequence[TableNode], max_distance: float = CLUSTER_DISTANCE
) -> list[TableGroup]:
    groups: list[TableGroup] = []
    ungrouped = {node.id for node in nodes}
    for index, cluster in enumerate(cluster_by_proximity(nodes, max_distance)):
        groups.append(
            TableGroup(
                id=f"group-{index}",
                name=f"Group {index + 1}",
                node_ids=[node.id for node in cluster],
                position=group_center(cluster),
                collapsed=False,
                color=group_color(index),
            )
        )
        ungrouped.difference_update(node.id for node in cluster)

    if ungrouped:
        remaining = [node for node in nodes if node.id in ungrouped]
        groups.append(
            TableGroup(
                id=REMAINDER_GROUP_ID,
                name=REMAINDER_GROUP_NAME,
                node_ids=[node.id for node in remaining],
                position=group_center(remaining),
                collapsed=False,
                color=REMAINDER_GROUP_COLOR,
            )
        )
    return groups
