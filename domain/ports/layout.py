from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from domain.models import Edge, LayoutResult, TableNode


class LayoutEngine(Protocol):
    def layout(self, nodes: Sequence[TableNode], edges: Sequence[Edge]) -> LayoutResult:
        ...
