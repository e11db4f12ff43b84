from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from domain.models import Edge, LayoutKind, LayoutResult, TableNode
from domain.ports.layout import LayoutEngine

logger = logging.getLogger(__name__)


class DiagramLayoutService:
    """Dispatches a layout request to the engine registered for its kind."""

    def __init__(self, engines: Mapping[LayoutKind, LayoutEngine]) -> None:
        self.engines = dict(engines)

    def apply(
        self,
        kind: LayoutKind,
        nodes: Sequence[TableNode],
        edges: Sequence[Edge],
        steps: int = 1,
    ) -> LayoutResult:
        engine = self.engines.get(kind)
        if engine is None:
            msg = f"Unknown layout kind: {kind}"
            raise ValueError(msg)
        result = engine.layout(nodes, edges)
        # Only the force simulation is iterative; other engines are idempotent.
        if kind == "force":
            for _ in range(steps - 1):
                result = engine.layout(result.nodes, result.edges)
        logger.debug("Applied %s layout to %d nodes", kind, len(result.nodes))
        return result
