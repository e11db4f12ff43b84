from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from domain.models import PerformanceConfig, TableNode
from domain.services.background_tasks import (
    CancellationToken,
    chunk_steps,
    chunked,
    deliver_batches,
    run_cooperatively,
)
from domain.services.viewport_manager import ViewportManager
from tests.helpers.graph_fixtures import make_node


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def test_chunked_splits_in_order() -> None:
    assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunked([], 3) == []
    with pytest.raises(ValueError):
        chunked([1], 0)


def test_chunk_steps_suspend_after_every_tenth_chunk() -> None:
    processed: list[int] = []
    steps = chunk_steps(list(range(25)), lambda chunk: processed.append(len(chunk)), 1, 10)
    yielded = list(steps)
    assert yielded == [1, 11, 21]
    assert len(processed) == 25


def test_background_layout_processes_every_node() -> None:
    manager = ViewportManager()
    nodes = [make_node(f"n{idx}", idx, idx) for idx in range(1234)]
    sleep = RecordingSleep()

    chunks = asyncio.run(manager.process_background_layout(nodes, [], sleep=sleep))

    assert chunks == 25
    # Suspends after chunks 0, 10 and 20.
    assert sleep.calls == [0, 0, 0]
    bounds = manager.get_node_bounds("n1233")
    assert bounds is not None and bounds.left == 1233


def test_background_layout_disabled_is_a_noop(
    performance_config_factory: Callable[..., PerformanceConfig],
) -> None:
    manager = ViewportManager(performance_config_factory(enable_background_layout=False))
    seen: list[list[TableNode]] = []
    chunks = asyncio.run(
        manager.process_background_layout([make_node("a")], [], process_chunk=seen.append)
    )
    assert chunks == 0
    assert seen == []


def test_cancellation_stops_at_the_next_suspension_point() -> None:
    token = CancellationToken()
    seen: list[int] = []

    def process(chunk: list[int]) -> None:
        seen.extend(chunk)
        if len(seen) >= 15:
            token.cancel()

    steps = chunk_steps(list(range(100)), process, chunk_size=1, yield_every=10)
    done = asyncio.run(run_cooperatively(steps, token, RecordingSleep()))

    # Chunk 15 cancels; the pass runs on to the suspension after chunk 20.
    assert done == 21
    assert len(seen) == 21


def test_progressive_loading_batches_with_delay() -> None:
    manager = ViewportManager()
    nodes = [make_node(f"n{idx}") for idx in range(45)]
    batches: list[list[TableNode]] = []
    sleep = RecordingSleep()

    delivered = asyncio.run(manager.load_nodes_progressively(nodes, batches.append, sleep=sleep))

    assert delivered == 3
    assert [len(batch) for batch in batches] == [20, 20, 5]
    assert [node.id for batch in batches for node in batch] == [node.id for node in nodes]
    assert sleep.calls == [0.1, 0.1]


def test_progressive_loading_honours_cancellation() -> None:
    token = CancellationToken()
    batches: list[list[int]] = []

    def on_load(batch: list[int]) -> None:
        batches.append(batch)
        token.cancel()

    delivered = asyncio.run(
        deliver_batches(list(range(50)), on_load, token=token, sleep=RecordingSleep())
    )
    assert delivered == 1
    assert batches == [list(range(20))]
