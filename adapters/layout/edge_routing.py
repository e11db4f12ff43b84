from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import pairwise

from domain.models import DEFAULT_NODE_WIDTH, Point, Size, TableNode
from domain.services.node_sizing import estimate_width

_EPS = 0.1


@dataclass(frozen=True)
class RoutingConfig:
    collision_padding: float = 20.0
    detour_padding: float = 60.0
    direct_threshold: float = 40.0
    collision_penalty: float = 100000.0
    turn_penalty: float = 2000.0
    length_weight: float = 0.1
    header_height: float = 40.0
    row_height: float = 32.0
    footer_height: float = 20.0
    lane_step: float = 8.0


class OrthogonalEdgeRouter:
    """Picks an orthogonal path between two tables that avoids other tables."""

    def __init__(self, config: RoutingConfig | None = None) -> None:
        self.config = config or RoutingConfig()

    def node_size(self, node: TableNode) -> Size:
        width = node.width or (estimate_width(node) if node.data.columns else DEFAULT_NODE_WIDTH)
        height = node.height or (
            self.config.header_height
            + len(node.data.columns) * self.config.row_height
            + self.config.footer_height
        )
        return Size(width, height)

    def route(
        self,
        source: TableNode,
        target: TableNode,
        nodes: Sequence[TableNode],
        edge_id: str | None = None,
    ) -> list[Point]:
        """Return intermediate waypoints; an empty list means a straight edge."""
        cfg = self.config
        start = self._center(source)
        end = self._center(target)
        if abs(end.x - start.x) < cfg.direct_threshold and abs(end.y - start.y) < cfg.direct_threshold:
            return []

        obstacles = [node for node in nodes if node.id not in {source.id, target.id}]
        mid_x = (start.x + end.x) / 2
        mid_y = (start.y + end.y) / 2
        candidates: list[list[Point]] = [
            [start, end],
            [start, Point(end.x, start.y), end],
            [start, Point(start.x, end.y), end],
            [start, Point(mid_x, start.y), Point(mid_x, end.y), end],
            [start, Point(start.x, mid_y), Point(end.x, mid_y), end],
        ]

        blocking: list[TableNode] = []
        blocking_ids: set[str] = set()
        for path in candidates:
            for p1, p2 in pairwise(self._simplify(path)):
                for node in obstacles:
                    if node.id not in blocking_ids and self._segment_hits(p1, p2, node):
                        blocking_ids.add(node.id)
                        blocking.append(node)

        for node in blocking:
            size = self.node_size(node)
            left = node.position.x - cfg.detour_padding
            right = node.position.x + size.width + cfg.detour_padding
            top = node.position.y - cfg.detour_padding
            bottom = node.position.y + size.height + cfg.detour_padding
            candidates.extend(
                [
                    [start, Point(left, start.y), Point(left, end.y), end],
                    [start, Point(right, start.y), Point(right, end.y), end],
                    [start, Point(start.x, top), Point(end.x, top), end],
                    [start, Point(start.x, bottom), Point(end.x, bottom), end],
                ]
            )

        offset = self._lane_offset(edge_id) if edge_id else 0.0
        best_path: list[Point] = []
        best_score = math.inf
        for raw in candidates:
            shifted = [raw[0]]
            for idx in range(1, len(raw) - 1):
                prev, point = raw[idx - 1], raw[idx]
                if abs(prev.x - point.x) < _EPS:
                    shifted.append(Point(point.x + offset, point.y))
                elif abs(prev.y - point.y) < _EPS:
                    shifted.append(Point(point.x, point.y + offset))
                else:
                    shifted.append(point)
            shifted.append(raw[-1])
            path = self._simplify(shifted)
            score = self._score(path, obstacles)
            if score < best_score:
                best_score = score
                best_path = path

        if len(best_path) == 2 and best_score == 0:
            return []
        return best_path[1:-1]

    def _center(self, node: TableNode) -> Point:
        size = self.node_size(node)
        return Point(node.position.x + size.width / 2, node.position.y + size.height / 2)

    def _score(self, path: list[Point], obstacles: Sequence[TableNode]) -> float:
        collisions = 0
        length = 0.0
        for p1, p2 in pairwise(path):
            length += math.hypot(p2.x - p1.x, p2.y - p1.y)
            collisions += sum(1 for node in obstacles if self._segment_hits(p1, p2, node))
        cfg = self.config
        return (
            collisions * cfg.collision_penalty
            + (len(path) - 2) * cfg.turn_penalty
            + length * cfg.length_weight
        )

    def _segment_hits(self, p1: Point, p2: Point, node: TableNode) -> bool:
        size = self.node_size(node)
        pad = self.config.collision_padding
        left = node.position.x - pad
        right = node.position.x + size.width + pad
        top = node.position.y - pad
        bottom = node.position.y + size.height + pad
        if abs(p1.y - p2.y) < _EPS:
            return top < p1.y < bottom and max(p1.x, p2.x) > left and min(p1.x, p2.x) < right
        if abs(p1.x - p2.x) < _EPS:
            return left < p1.x < right and max(p1.y, p2.y) > top and min(p1.y, p2.y) < bottom
        # Diagonal segments are never checked.
        return False

    def _simplify(self, path: list[Point]) -> list[Point]:
        if len(path) <= 2:
            return list(path)
        simplified = [path[0]]
        for idx in range(1, len(path) - 1):
            prev = simplified[-1]
            current = path[idx]
            following = path[idx + 1]
            if abs(current.x - prev.x) < _EPS and abs(current.y - prev.y) < _EPS:
                continue
            if not self._collinear(prev, current, following):
                simplified.append(current)
        last = path[-1]
        tail = simplified[-1]
        if abs(last.x - tail.x) > _EPS or abs(last.y - tail.y) > _EPS:
            simplified.append(last)
        return simplified

    def _collinear(self, p1: Point, p2: Point, p3: Point) -> bool:
        vertical = abs(p1.x - p2.x) < _EPS and abs(p2.x - p3.x) < _EPS
        horizontal = abs(p1.y - p2.y) < _EPS and abs(p2.y - p3.y) < _EPS
        return vertical or horizontal

    def _lane_offset(self, edge_id: str) -> float:
        value = 0
        for char in edge_id:
            value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
            if value >= 0x80000000:
                value -= 0x100000000
        return ((abs(value) % 5) - 2) * self.config.lane_step
