from __future__ import annotations

from adapters.layout.force import ForceConfig, ForceDirectedLayoutEngine
from adapters.layout.grouped import GroupedLayoutEngine
from adapters.layout.ranked import RankedLayoutEngine
from app.config import AppSettings
from domain.models import Direction, GroupBy
from domain.services.apply_layout import DiagramLayoutService
from domain.services.viewport_manager import ViewportManager


def build_layout_service(
    settings: AppSettings,
    direction: Direction | None = None,
    group_by: GroupBy | None = None,
) -> DiagramLayoutService:
    options = settings.layout
    if direction is not None:
        options = options.model_copy(update={"direction": direction})
    return DiagramLayoutService(
        {
            "hierarchical": RankedLayoutEngine(options),
            "force": ForceDirectedLayoutEngine(ForceConfig(canvas=settings.canvas.size())),
            "group": GroupedLayoutEngine(group_by=group_by or settings.canvas.group_by),
        }
    )


def build_viewport_manager(settings: AppSettings) -> ViewportManager:
    return ViewportManager(settings.performance)
