from __future__ import annotations

import pytest

from adapters.layout.force import ForceConfig, ForceDirectedLayoutEngine
from domain.models import Size
from tests.helpers.graph_fixtures import make_edge, make_node, scattered_nodes


def test_positions_stay_inside_the_clamp() -> None:
    nodes = scattered_nodes(30, extent=5000)
    nodes.append(make_node("stacked", 10, 10))
    nodes.append(make_node("stacked-2", 10, 10))
    result = ForceDirectedLayoutEngine().force_directed_layout(nodes, [], 1200, 800)
    for node in result.nodes:
        assert 50 <= node.position.x <= 1000
        assert 50 <= node.position.y <= 650


def test_single_step_matches_pair_forces() -> None:
    nodes = [make_node("a", 500, 300), make_node("b", 600, 300)]
    result = ForceDirectedLayoutEngine().force_directed_layout(
        nodes, [make_edge("a", "b")], 1200, 800
    )
    a, b = result.nodes
    # Repulsion 5000 / 100^2 = 0.5 apart, attraction 100 * 0.01 = 1 together.
    assert a.position.x == pytest.approx(500 + (-0.5 + 1.0) * 0.1)
    assert b.position.x == pytest.approx(600 + (0.5 - 1.0) * 0.1)
    assert a.position.y == pytest.approx(300)


def test_layout_uses_configured_canvas() -> None:
    engine = ForceDirectedLayoutEngine(ForceConfig(canvas=Size(400, 300)))
    result = engine.layout([make_node("a", 900, 900)], [])
    assert (result.nodes[0].position.x, result.nodes[0].position.y) == (200, 150)


def test_edges_and_inputs_are_untouched() -> None:
    nodes = [make_node("a", 100, 100), make_node("b", 100, 100)]
    edges = [make_edge("a", "b"), make_edge("a", "ghost")]
    result = ForceDirectedLayoutEngine().force_directed_layout(nodes, edges, 1200, 800)
    assert result.edges == edges
    assert nodes[0].position.x == 100
    assert len(result.nodes) == 2
