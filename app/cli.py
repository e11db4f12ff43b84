from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, cast

import typer
from rich.console import Console
from rich.table import Table

from adapters.filesystem.graph_repository import FileSystemGraphRepository
from adapters.layout.edge_routing import OrthogonalEdgeRouter
from app.config import AppSettings, configure_logging, load_settings
from app.layout_wiring import build_layout_service, build_viewport_manager
from domain.models import Direction, GraphSnapshot, GroupBy, LayoutKind, LayoutResult, Viewport
from domain.services.graph_structure import compute_diagram_stats, prune_edges
from domain.services.render_metrics import traced_memory_mb

app = typer.Typer(no_args_is_help=True)
layout_app = typer.Typer(no_args_is_help=True)
viewport_app = typer.Typer(no_args_is_help=True)
groups_app = typer.Typer(no_args_is_help=True)
app.add_typer(layout_app, name="layout")
app.add_typer(viewport_app, name="viewport")
app.add_typer(groups_app, name="groups")
console = Console()
logger = logging.getLogger(__name__)

_state: dict[str, AppSettings] = {}


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, help="YAML settings file."),
    log_level: Optional[str] = typer.Option(None, help="Override the configured log level."),
) -> None:
    settings = load_settings(config)
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level.upper()})
    configure_logging(settings)
    _state["settings"] = settings


def _settings() -> AppSettings:
    return _state.get("settings") or load_settings()


def _load(input_path: Path) -> GraphSnapshot:
    try:
        return FileSystemGraphRepository().load(input_path)
    except FileNotFoundError as exc:
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        console.print(f"[red]Invalid graph file:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _write_layout(result: LayoutResult, output: Path) -> None:
    FileSystemGraphRepository().save_result(result, output)
    console.print(f"[green]Wrote[/] {output} ({len(result.nodes)} nodes)")


def _run_layout(
    kind: LayoutKind,
    input_path: Path,
    output: Path,
    direction: Optional[str] = None,
    group_by: Optional[str] = None,
    steps: int = 1,
) -> None:
    snapshot = _load(input_path)
    service = build_layout_service(
        _settings(),
        direction=cast(Optional[Direction], direction),
        group_by=cast(Optional[GroupBy], group_by),
    )
    result = service.apply(kind, snapshot.nodes, snapshot.edges, steps=steps)
    logger.info("Laid out %s with %s", input_path, kind)
    _write_layout(result, output)


@layout_app.command("auto")
def layout_auto(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    output: Path = typer.Option(Path("data/layout/auto.json"), help="Output graph JSON file."),
    direction: Optional[str] = typer.Option(None, help="TB, LR, BT or RL."),
) -> None:
    normalized = direction.upper() if direction else None
    if normalized is not None and normalized not in {"TB", "LR", "BT", "RL"}:
        console.print(f"[red]Unknown direction:[/] {direction}")
        raise typer.Exit(code=1)
    _run_layout("hierarchical", input_path, output, direction=normalized)


@layout_app.command("force")
def layout_force(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    output: Path = typer.Option(Path("data/layout/force.json"), help="Output graph JSON file."),
    steps: Optional[int] = typer.Option(None, min=1, help="Simulation steps to run."),
) -> None:
    _run_layout("force", input_path, output, steps=steps or _settings().canvas.force_steps)


@layout_app.command("group")
def layout_group(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    output: Path = typer.Option(Path("data/layout/group.json"), help="Output graph JSON file."),
    group_by: Optional[str] = typer.Option(None, help="relationship or schema."),
) -> None:
    if group_by is not None and group_by not in {"relationship", "schema"}:
        console.print(f"[red]Unknown grouping:[/] {group_by}")
        raise typer.Exit(code=1)
    _run_layout("group", input_path, output, group_by=group_by)


@viewport_app.command("visible")
def viewport_visible(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    x: float = typer.Option(0.0, help="Viewport x translation."),
    y: float = typer.Option(0.0, help="Viewport y translation."),
    zoom: float = typer.Option(1.0, min=0.01, help="Viewport zoom."),
    width: float = typer.Option(1920.0, help="Screen width in pixels."),
    height: float = typer.Option(1080.0, help="Screen height in pixels."),
) -> None:
    snapshot = _load(input_path)
    manager = build_viewport_manager(_settings())
    viewport = Viewport(x=x, y=y, zoom=zoom, width=width, height=height)
    visible = manager.get_visible_nodes(snapshot.nodes, viewport)
    table = Table(title=f"Visible tables ({len(visible)}/{len(snapshot.nodes)})")
    table.add_column("id")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    for node in visible:
        table.add_row(node.id, f"{node.position.x:.1f}", f"{node.position.y:.1f}")
    console.print(table)


@groups_app.command("create")
def groups_create(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    enable: bool = typer.Option(True, help="Force grouping on regardless of settings."),
) -> None:
    snapshot = _load(input_path)
    manager = build_viewport_manager(_settings())
    if enable:
        manager.update_config(enable_grouping=True)
    groups = manager.create_table_groups(snapshot.nodes, snapshot.edges)
    if not groups:
        console.print("[yellow]No groups created (grouping disabled or fewer than 20 tables)[/]")
        raise typer.Exit(code=0)
    table = Table(title="Table groups")
    table.add_column("id")
    table.add_column("name")
    table.add_column("tables", justify="right")
    table.add_column("color")
    for group in groups:
        table.add_row(group.id, group.name, str(len(group.node_ids)), group.color or "")
    console.print(table)


@app.command("route")
def route(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    edge_id: str = typer.Argument(..., help="Edge to route."),
) -> None:
    snapshot = _load(input_path)
    edge = next((item for item in snapshot.edges if item.id == edge_id), None)
    nodes = {node.id: node for node in snapshot.nodes}
    if edge is None or edge.source not in nodes or edge.target not in nodes:
        console.print(f"[red]Edge not found or dangling:[/] {edge_id}")
        raise typer.Exit(code=1)
    waypoints = OrthogonalEdgeRouter().route(
        nodes[edge.source], nodes[edge.target], snapshot.nodes, edge.id
    )
    if not waypoints:
        console.print(f"{edge.source} -> {edge.target}: straight")
        return
    table = Table(title=f"Waypoints for {edge.id}")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    for point in waypoints:
        table.add_row(f"{point.x:.1f}", f"{point.y:.1f}")
    console.print(table)


@app.command("stats")
def stats(input_path: Path = typer.Argument(..., help="Graph JSON file.")) -> None:
    snapshot = _load(input_path)
    result = compute_diagram_stats(snapshot.nodes, snapshot.edges, traced_memory_mb)
    console.print(f"Tables: {result.total_nodes}")
    console.print(f"Relationships: {result.total_edges}")
    console.print(f"Columns: {result.total_columns}")
    if result.memory_usage is not None:
        console.print(f"Memory: {result.memory_usage:.1f} MB")


@app.command("prune")
def prune(
    input_path: Path = typer.Argument(..., help="Graph JSON file."),
    output: Optional[Path] = typer.Option(None, help="Output file (defaults to the input)."),
) -> None:
    snapshot = _load(input_path)
    edges = prune_edges(snapshot.nodes, snapshot.edges)
    removed = len(snapshot.edges) - len(edges)
    target = output or input_path
    FileSystemGraphRepository().save(GraphSnapshot(nodes=snapshot.nodes, edges=edges), target)
    console.print(f"[green]Removed[/] {removed} duplicate or orphaned edges -> {target}")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8080, help="Bind port."),
) -> None:
    import uvicorn

    uvicorn.run("app.web_main:app", host=host, port=port)


if __name__ == "__main__":
    app()
