from __future__ import annotations

import math
from collections.abc import Sequence

from domain.models import Edge, TableNode

ANIMATED_DISTANCE = 300.0
SMOOTHSTEP_DISTANCE = 200.0


def style_edges_by_distance(edges: Sequence[Edge], nodes: Sequence[TableNode]) -> list[Edge]:
    """Restyle edges from the distance between their endpoints.

    Protected relationship edges and edges with a missing endpoint are
    returned untouched.
    """
    by_id: dict[str, TableNode] = {}
    for node in nodes:
        by_id.setdefault(node.id, node)

    styled: list[Edge] = []
    for edge in edges:
        source = by_id.get(edge.source)
        target = by_id.get(edge.target)
        if edge.is_protected or source is None or target is None:
            styled.append(edge)
            continue
        distance = math.hypot(
            target.position.x - source.position.x,
            target.position.y - source.position.y,
        )
        styled.append(
            edge.model_copy(
                update={
                    "animated": distance > ANIMATED_DISTANCE,
                    "type": "smoothstep" if distance > SMOOTHSTEP_DISTANCE else "straight",
                }
            )
        )
    return styled
