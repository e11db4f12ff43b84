from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import GraphSnapshot


class GraphRepository(Protocol):
    def load(self, path: Path) -> GraphSnapshot: ...

    def save(self, snapshot: GraphSnapshot, path: Path) -> None: ...
