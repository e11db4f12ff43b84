from __future__ import annotations

from collections.abc import Sequence

from domain.models import NodeBounds, TableNode, Viewport
from domain.services.node_sizing import node_bounds


def viewport_bounds(viewport: Viewport, buffer: float) -> NodeBounds:
    """Visible screen rectangle in layout space, grown by `buffer` screen pixels.

    `viewport.zoom` must be positive.
    """
    zoom = viewport.zoom
    margin = buffer / zoom
    return NodeBounds(
        left=-viewport.x / zoom - margin,
        top=-viewport.y / zoom - margin,
        right=(-viewport.x + viewport.width) / zoom + margin,
        bottom=(-viewport.y + viewport.height) / zoom + margin,
    )


def cull_nodes(
    nodes: Sequence[TableNode],
    viewport: Viewport,
    buffer: float,
    max_nodes: int,
) -> list[TableNode]:
    bounds = viewport_bounds(viewport, buffer)
    visible = [node for node in nodes if not node_bounds(node).is_disjoint(bounds)]
    # Capacity bound only; nodes past the limit are dropped in input order.
    return visible[:max_nodes]
