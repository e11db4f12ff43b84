from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Optional, cast

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field, ValidationError

from adapters.layout.edge_routing import OrthogonalEdgeRouter
from app.config import AppSettings, load_settings
from app.layout_wiring import build_layout_service, build_viewport_manager
from domain.models import (
    Direction,
    Edge,
    GroupBy,
    LayoutKind,
    PerformanceConfig,
    TableGroup,
    TableNode,
    Viewport,
)
from domain.services.viewport_manager import ViewportManager

logger = logging.getLogger(__name__)


class LayoutRequest(BaseModel):
    nodes: list[TableNode] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    direction: Optional[Direction] = None
    group_by: Optional[GroupBy] = None
    steps: int = Field(default=1, ge=1, le=500)


class GraphRequest(BaseModel):
    nodes: list[TableNode] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)


class VisibleRequest(BaseModel):
    nodes: list[TableNode] = Field(default_factory=list)
    viewport: Viewport = Viewport()


class RouteRequest(BaseModel):
    nodes: list[TableNode] = Field(default_factory=list)
    source: str
    target: str
    edge_id: Optional[str] = None


class RenderCycleRequest(BaseModel):
    total_nodes: int = Field(default=0, ge=0)
    visible_nodes: int = Field(default=0, ge=0)
    rendered_nodes: int = Field(default=0, ge=0)


class SessionRegistry:
    """Viewport managers keyed by session id; the least recently used is evicted."""

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings
        self._sessions: OrderedDict[str, ViewportManager] = OrderedDict()

    def create(self, config: PerformanceConfig | None = None) -> tuple[str, ViewportManager]:
        session_id = uuid.uuid4().hex
        manager = (
            ViewportManager(config) if config else build_viewport_manager(self._settings)
        )
        self._sessions[session_id] = manager
        while len(self._sessions) > self._settings.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted viewport session %s", evicted)
        return session_id, manager

    def get(self, session_id: str) -> ViewportManager | None:
        manager = self._sessions.get(session_id)
        if manager is not None:
            self._sessions.move_to_end(session_id)
        return manager

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


@dataclass(frozen=True)
class CanvasContext:
    settings: AppSettings
    sessions: SessionRegistry


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title=settings.title)
    app.state.context = CanvasContext(settings=settings, sessions=SessionRegistry(settings))

    @app.get("/api/health")
    def api_health(context: CanvasContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse({"status": "ok", "sessions": len(context.sessions)})

    @app.post("/api/layout/{kind}")
    def api_layout(
        kind: LayoutKind,
        payload: LayoutRequest,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        service = build_layout_service(
            context.settings, direction=payload.direction, group_by=payload.group_by
        )
        result = service.apply(kind, payload.nodes, payload.edges, steps=payload.steps)
        return ORJSONResponse(
            {
                "nodes": [dump_model(node) for node in result.nodes],
                "edges": [dump_model(edge) for edge in result.edges],
            }
        )

    @app.post("/api/route")
    def api_route(payload: RouteRequest) -> ORJSONResponse:
        nodes = {node.id: node for node in payload.nodes}
        source = nodes.get(payload.source)
        target = nodes.get(payload.target)
        if source is None or target is None:
            raise HTTPException(status_code=404, detail="Edge endpoint not found")
        waypoints = OrthogonalEdgeRouter().route(source, target, payload.nodes, payload.edge_id)
        return ORJSONResponse({"waypoints": [{"x": p.x, "y": p.y} for p in waypoints]})

    @app.post("/api/sessions", status_code=201)
    def api_create_session(
        config: Optional[PerformanceConfig] = None,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        session_id, manager = context.sessions.create(config)
        return ORJSONResponse(
            {"session_id": session_id, "config": dump_model(manager.get_config())},
            status_code=201,
        )

    @app.delete("/api/sessions/{session_id}")
    def api_delete_session(
        session_id: str, context: CanvasContext = Depends(get_context)
    ) -> ORJSONResponse:
        if not context.sessions.delete(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        return ORJSONResponse({"status": "ok"})

    @app.post("/api/sessions/{session_id}/config")
    def api_update_config(
        session_id: str,
        changes: dict[str, Any],
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        unknown = set(changes) - set(PerformanceConfig.model_fields)
        if unknown:
            raise HTTPException(
                status_code=422, detail=f"Unknown config keys: {', '.join(sorted(unknown))}"
            )
        try:
            updated = manager.update_config(**changes)
        except ValidationError as exc:
            detail = exc.errors(include_url=False, include_context=False)
            raise HTTPException(status_code=422, detail=detail) from exc
        return ORJSONResponse(dump_model(updated))

    @app.post("/api/sessions/{session_id}/visible")
    def api_visible_nodes(
        session_id: str,
        payload: VisibleRequest,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        visible = manager.get_visible_nodes(payload.nodes, payload.viewport)
        return ORJSONResponse(
            {"count": len(visible), "nodes": [dump_model(node) for node in visible]}
        )

    @app.post("/api/sessions/{session_id}/groups")
    def api_create_groups(
        session_id: str,
        payload: GraphRequest,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        groups = manager.create_table_groups(payload.nodes, payload.edges)
        return ORJSONResponse({"groups": [dump_model(group) for group in groups]})

    @app.get("/api/sessions/{session_id}/groups")
    def api_list_groups(
        session_id: str, context: CanvasContext = Depends(get_context)
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        return ORJSONResponse(
            {"groups": [dump_model(group) for group in manager.get_table_groups()]}
        )

    @app.put("/api/sessions/{session_id}/groups/{group_id}")
    def api_update_group(
        session_id: str,
        group_id: str,
        group: TableGroup,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        if group.id != group_id:
            raise HTTPException(status_code=422, detail="Group id mismatch")
        manager.update_table_group(group)
        return ORJSONResponse(dump_model(group))

    @app.post("/api/sessions/{session_id}/groups/{group_id}/toggle")
    def api_toggle_group(
        session_id: str,
        group_id: str,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        group = manager.toggle_group_collapse(group_id)
        if group is None:
            raise HTTPException(status_code=404, detail="Group not found")
        return ORJSONResponse(dump_model(group))

    @app.delete("/api/sessions/{session_id}/groups/{group_id}")
    def api_delete_group(
        session_id: str,
        group_id: str,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        if manager.get_table_group(group_id) is None:
            raise HTTPException(status_code=404, detail="Group not found")
        manager.delete_table_group(group_id)
        return ORJSONResponse({"status": "ok"})

    @app.post("/api/sessions/{session_id}/render-cycle")
    def api_render_cycle(
        session_id: str,
        payload: RenderCycleRequest,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        manager.start_render_cycle()
        manager.end_render_cycle(
            payload.total_nodes, payload.visible_nodes, payload.rendered_nodes
        )
        return ORJSONResponse(dump_model(manager.get_metrics()))

    @app.get("/api/sessions/{session_id}/metrics")
    def api_metrics(
        session_id: str, context: CanvasContext = Depends(get_context)
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        return ORJSONResponse(
            {
                "metrics": dump_model(manager.get_metrics()),
                "recommendations": manager.get_performance_recommendations(),
            }
        )

    @app.post("/api/sessions/{session_id}/background-layout")
    async def api_background_layout(
        session_id: str,
        payload: GraphRequest,
        context: CanvasContext = Depends(get_context),
    ) -> ORJSONResponse:
        manager = require_session(context, session_id)
        chunks = await manager.process_background_layout(payload.nodes, payload.edges)
        return ORJSONResponse({"chunks": chunks})

    return app


def get_context(request: Request) -> CanvasContext:
    return cast(CanvasContext, request.app.state.context)


def require_session(context: CanvasContext, session_id: str) -> ViewportManager:
    manager = context.sessions.get(session_id)
    if manager is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return manager


def dump_model(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


app = create_app(load_settings())
