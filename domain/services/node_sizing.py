from __future__ import annotations

from domain.models import DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH, NodeBounds, Size, TableNode

HEADER_HEIGHT = 40.0
COLUMN_HEIGHT = 25.0
COLUMN_WIDTH = 30.0
BODY_WIDTH = 150.0
VERTICAL_PADDING = 20.0


def estimate_width(node: TableNode) -> float:
    columns = max(3, len(node.data.columns))
    return max(DEFAULT_NODE_WIDTH, BODY_WIDTH + columns * COLUMN_WIDTH)


def estimate_height(node: TableNode) -> float:
    columns = max(1, len(node.data.columns))
    return HEADER_HEIGHT + columns * COLUMN_HEIGHT + VERTICAL_PADDING


def estimate_size(node: TableNode) -> Size:
    return Size(estimate_width(node), estimate_height(node))


def node_bounds(node: TableNode) -> NodeBounds:
    # Culling uses the rendered size when known and fixed defaults otherwise.
    width = node.width or DEFAULT_NODE_WIDTH
    height = node.height or DEFAULT_NODE_HEIGHT
    return NodeBounds(
        left=node.position.x,
        top=node.position.y,
        right=node.position.x + width,
        bottom=node.position.y + height,
    )
