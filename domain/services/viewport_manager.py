from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, Dict, List, Optional

from domain.models import (
    Edge,
    NodeBounds,
    PerformanceConfig,
    PerformanceMetrics,
    TableGroup,
    TableNode,
    Viewport,
)
from domain.services.background_tasks import (
    BATCH_DELAY_SECONDS,
    BATCH_SIZE,
    CHUNK_SIZE,
    YIELD_EVERY_CHUNKS,
    CancellationToken,
    Sleep,
    chunk_steps,
    deliver_batches,
    run_cooperatively,
)
from domain.services.node_sizing import node_bounds
from domain.services.render_metrics import (
    Clock,
    MemoryProbe,
    RenderMetricsTracker,
    monotonic_ms,
    performance_recommendations,
    traced_memory_mb,
)
from domain.services.table_grouping import MIN_NODES_FOR_GROUPING, build_table_groups
from domain.services.viewport_culling import cull_nodes

logger = logging.getLogger(__name__)

ChunkProcessor = Callable[[List[TableNode]], None]


class ViewportManager:
    """Render-workload state for one diagram session.

    Owns the performance config, render metrics, the table group map, the last
    visibility pass and the node bounds computed by background passes. Nothing
    is shared between instances.
    """

    def __init__(
        self,
        config: PerformanceConfig | None = None,
        clock: Clock = monotonic_ms,
        memory_probe: MemoryProbe = traced_memory_mb,
    ) -> None:
        self._config = config.model_copy() if config else PerformanceConfig()
        self._tracker = RenderMetricsTracker(clock=clock, memory_probe=memory_probe)
        self._groups: Dict[str, TableGroup] = {}
        self._visibility: Dict[str, bool] = {}
        self._bounds: Dict[str, NodeBounds] = {}

    # Viewport culling

    def get_visible_nodes(self, nodes: List[TableNode], viewport: Viewport) -> List[TableNode]:
        if not self._config.enable_lazy_rendering:
            self._visibility = {node.id: True for node in nodes}
            return nodes
        visible = cull_nodes(
            nodes,
            viewport,
            buffer=self._config.viewport_buffer,
            max_nodes=self._config.max_nodes_in_view,
        )
        visible_ids = {node.id for node in visible}
        self._visibility = {node.id: node.id in visible_ids for node in nodes}
        return visible

    def is_node_visible(self, node_id: str) -> Optional[bool]:
        """Result of the last culling pass, or None if the node was not part of it."""
        return self._visibility.get(node_id)

    # Grouping

    def create_table_groups(
        self, nodes: Sequence[TableNode], edges: Sequence[Edge]
    ) -> List[TableGroup]:
        if not self._config.enable_grouping or len(nodes) < MIN_NODES_FOR_GROUPING:
            return []
        groups = build_table_groups(nodes)
        self._groups = {group.id: group for group in groups}
        logger.debug("Built %d table groups from %d nodes", len(groups), len(nodes))
        return groups

    def get_table_groups(self) -> List[TableGroup]:
        return list(self._groups.values())

    def get_table_group(self, group_id: str) -> Optional[TableGroup]:
        return self._groups.get(group_id)

    def update_table_group(self, group: TableGroup) -> None:
        self._groups[group.id] = group

    def delete_table_group(self, group_id: str) -> None:
        self._groups.pop(group_id, None)

    def toggle_group_collapse(self, group_id: str) -> Optional[TableGroup]:
        group = self._groups.get(group_id)
        if group is None:
            return None
        group.collapsed = not group.collapsed
        return group

    # Metrics

    def start_render_cycle(self) -> None:
        self._tracker.start()

    def end_render_cycle(self, total_nodes: int, visible_nodes: int, rendered_nodes: int) -> None:
        self._tracker.end(total_nodes, visible_nodes, rendered_nodes)

    def get_metrics(self) -> PerformanceMetrics:
        return self._tracker.snapshot()

    def reset_metrics(self) -> None:
        self._tracker.reset()

    def get_performance_recommendations(self) -> List[str]:
        return performance_recommendations(self._tracker.snapshot(), self._config)

    # Background and progressive work

    async def process_background_layout(
        self,
        nodes: Sequence[TableNode],
        edges: Sequence[Edge],
        process_chunk: ChunkProcessor | None = None,
        token: CancellationToken | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> int:
        """Process nodes in chunks, yielding to the event loop between batches of chunks.

        Returns the number of chunks processed; 0 when background layout is disabled.
        """
        if not self._config.enable_background_layout:
            return 0
        steps = chunk_steps(
            list(nodes),
            process_chunk or self._prepare_chunk,
            chunk_size=CHUNK_SIZE,
            yield_every=YIELD_EVERY_CHUNKS,
        )
        return await run_cooperatively(steps, token, sleep)

    def get_node_bounds(self, node_id: str) -> Optional[NodeBounds]:
        return self._bounds.get(node_id)

    async def load_nodes_progressively(
        self,
        nodes: Sequence[TableNode],
        on_load: Callable[[List[TableNode]], None],
        token: CancellationToken | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> int:
        return await deliver_batches(
            list(nodes),
            on_load,
            batch_size=BATCH_SIZE,
            delay=BATCH_DELAY_SECONDS,
            token=token,
            sleep=sleep,
        )

    def _prepare_chunk(self, chunk: List[TableNode]) -> None:
        for node in chunk:
            self._bounds[node.id] = node_bounds(node)

    # Configuration

    def update_config(self, **changes: Any) -> PerformanceConfig:
        self._config = PerformanceConfig.model_validate({**self._config.model_dump(), **changes})
        return self.get_config()

    def get_config(self) -> PerformanceConfig:
        return self._config.model_copy()
