from __future__ import annotations

import time
import tracemalloc
from collections.abc import Callable
from typing import Optional

from domain.models import PerformanceConfig, PerformanceMetrics

FPS_WINDOW_MS = 1000.0
FRAME_BUDGET_MS = 16.0
MIN_FPS = 30.0
LAZY_RENDERING_NODE_THRESHOLD = 100
GROUPING_NODE_THRESHOLD = 50
HIGH_MEMORY_MB = 100.0

Clock = Callable[[], float]
MemoryProbe = Callable[[], Optional[float]]


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


def traced_memory_mb() -> float | None:
    if not tracemalloc.is_tracing():
        return None
    current, _peak = tracemalloc.get_traced_memory()
    return current / 1024 / 1024


class RenderMetricsTracker:
    """Frame timing and node counters for the render loop.

    FPS is the number of frames started during the last full one-second
    window; it stays at 0 until the first window closes.
    """

    def __init__(
        self,
        clock: Clock = monotonic_ms,
        memory_probe: MemoryProbe = traced_memory_mb,
    ) -> None:
        self._clock = clock
        self._memory_probe = memory_probe
        self._metrics = PerformanceMetrics()
        self._frame_count = 0
        self._window_start = 0.0
        self._render_start = 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def start(self) -> None:
        self._render_start = self._clock()
        self._frame_count += 1

    def end(self, total_nodes: int, visible_nodes: int, rendered_nodes: int) -> None:
        now = self._clock()
        metrics = self._metrics
        if now - self._window_start >= FPS_WINDOW_MS:
            metrics.fps = float(self._frame_count)
            self._frame_count = 0
            self._window_start = now

        metrics.total_nodes = total_nodes
        metrics.visible_nodes = visible_nodes
        metrics.rendered_nodes = rendered_nodes
        metrics.render_time = now - self._render_start
        memory = self._memory_probe()
        if memory is not None:
            metrics.memory_usage = memory

    def snapshot(self) -> PerformanceMetrics:
        return self._metrics.model_copy()

    def reset(self) -> None:
        self._metrics = PerformanceMetrics()
        self._frame_count = 0
        self._window_start = 0.0


def performance_recommendations(
    metrics: PerformanceMetrics, config: PerformanceConfig
) -> list[str]:
    recommendations: list[str] = []
    if metrics.total_nodes > LAZY_RENDERING_NODE_THRESHOLD and not config.enable_lazy_rendering:
        recommendations.append("Enable lazy rendering for better performance with large schemas")
    if metrics.total_nodes > GROUPING_NODE_THRESHOLD and not config.enable_grouping:
        recommendations.append("Enable table grouping to organize large schemas")
    if metrics.fps < MIN_FPS:
        recommendations.append("Consider reducing the maximum nodes in view or enabling grouping")
    if metrics.memory_usage and metrics.memory_usage > HIGH_MEMORY_MB:
        recommendations.append("High memory usage detected. Consider enabling lazy rendering")
    if metrics.render_time > FRAME_BUDGET_MS:
        recommendations.append("Slow render time detected. Enable background layout processing")
    return recommendations
