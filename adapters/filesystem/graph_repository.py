from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from domain.models import GraphSnapshot, LayoutResult
from domain.ports.repositories import GraphRepository


class FileSystemGraphRepository(GraphRepository):
    """Reads and writes `{"nodes": [...], "edges": [...]}` graph snapshots."""

    def load(self, path: Path) -> GraphSnapshot:
        if not path.exists():
            msg = f"Graph file not found: {path}"
            raise FileNotFoundError(msg)
        payload = orjson.loads(path.read_bytes())
        if not isinstance(payload, dict):
            msg = f"Expected a JSON object in {path}"
            raise ValueError(msg)
        return GraphSnapshot.model_validate(payload)

    def save(self, snapshot: GraphSnapshot, path: Path) -> None:
        self._write_atomic(path, snapshot.model_dump(mode="json", by_alias=True))

    def save_result(self, result: LayoutResult, path: Path) -> None:
        self.save(GraphSnapshot(nodes=result.nodes, edges=result.edges), path)

    def _write_atomic(self, path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(f"{path.suffix}.tmp")
        tmp_path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        tmp_path.replace(path)
