from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Generator, Sequence
from dataclasses import dataclass
from typing import List, TypeVar

T = TypeVar("T")

CHUNK_SIZE = 50
YIELD_EVERY_CHUNKS = 10
BATCH_SIZE = 20
BATCH_DELAY_SECONDS = 0.1

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class CancellationToken:
    """Checked only at suspension points; work between them always completes."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    if size <= 0:
        msg = "Chunk size must be positive"
        raise ValueError(msg)
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def chunk_steps(
    items: Sequence[T],
    process: Callable[[List[T]], None],
    chunk_size: int = CHUNK_SIZE,
    yield_every: int = YIELD_EVERY_CHUNKS,
) -> Generator[int, None, int]:
    """Process `items` chunk by chunk, suspending after chunks 0, N, 2N, ...

    Yields and finally returns the number of chunks processed so far.
    """
    processed = 0
    for index, chunk in enumerate(chunked(items, chunk_size)):
        process(chunk)
        processed += 1
        if index % yield_every == 0:
            yield processed
    return processed


async def run_cooperatively(
    steps: Generator[int, None, int],
    token: CancellationToken | None = None,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """Drive a step generator, handing control to the event loop between steps."""
    done = 0
    while True:
        try:
            done = next(steps)
        except StopIteration as stop:
            return stop.value if stop.value is not None else done
        await sleep(0)
        if token is not None and token.cancelled:
            steps.close()
            logger.debug("Cooperative pass cancelled after %d steps", done)
            return done


async def deliver_batches(
    items: Sequence[T],
    on_load: Callable[[List[T]], None],
    batch_size: int = BATCH_SIZE,
    delay: float = BATCH_DELAY_SECONDS,
    token: CancellationToken | None = None,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """Hand `items` to `on_load` in batches, waiting `delay` seconds between them.

    Returns the number of batches delivered.
    """
    batches = chunked(items, batch_size)
    delivered = 0
    for index, batch in enumerate(batches):
        if token is not None and token.cancelled:
            break
        on_load(batch)
        delivered += 1
        if index < len(batches) - 1:
            await sleep(delay)
    return delivered
