from __future__ import annotations

import pytest

from adapters.layout.grouped import GroupedLayoutEngine
from domain.models import Edge, GroupBy, TableNode
from domain.services.node_sizing import estimate_size
from tests.helpers.graph_fixtures import make_edge, make_node


def _mixed_graph() -> tuple[list[TableNode], list[Edge]]:
    nodes = [
        make_node("users", schema="auth"),
        make_node("orders", schema="sales"),
        make_node("sessions", schema="auth"),
        make_node("items", schema="sales"),
        make_node("audit"),
    ]
    edges = [
        make_edge("sessions", "users"),
        make_edge("items", "orders"),
        make_edge("orders", "users"),
        make_edge("audit", "nowhere"),
    ]
    return nodes, edges


@pytest.mark.parametrize("group_by", ["relationship", "schema"])
def test_every_node_placed_exactly_once(group_by: GroupBy) -> None:
    nodes, edges = _mixed_graph()
    result = GroupedLayoutEngine().hierarchical_group_layout(nodes, edges, group_by)
    assert sorted(node.id for node in result.nodes) == sorted(node.id for node in nodes)
    assert result.edges == edges


def test_schema_partition_defaults_untagged_nodes() -> None:
    nodes, edges = _mixed_graph()
    groups = GroupedLayoutEngine().partition(nodes, edges, "schema")
    assert list(groups) == ["auth", "sales", "default"]
    assert [node.id for node in groups["auth"]] == ["users", "sessions"]


def test_relationship_partition_uses_components() -> None:
    nodes, edges = _mixed_graph()
    groups = GroupedLayoutEngine().partition(nodes, edges, "relationship")
    assert list(groups) == ["group-0", "group-1"]
    assert [node.id for node in groups["group-0"]] == ["users", "orders", "sessions", "items"]
    assert [node.id for node in groups["group-1"]] == ["audit"]


def test_groups_tile_from_origin_and_wrap() -> None:
    nodes = [make_node(f"solo{idx}") for idx in range(4)]
    result = GroupedLayoutEngine().hierarchical_group_layout(nodes, [])
    positions = [(node.position.x, node.position.y) for node in result.nodes]
    # Each local layout starts at the 50 margin, so a group is 290 wide and 135 tall.
    width = 50 + estimate_size(nodes[0]).width
    height = 50 + estimate_size(nodes[0]).height
    assert positions[0] == (100, 100)
    assert positions[1] == (100 + width + 100, 100)
    # The third group crosses the 800 row limit after placement, so the fourth wraps.
    assert positions[2] == (100 + 2 * (width + 100), 100)
    assert positions[3] == (100, 100 + height + 100)


def test_layout_uses_configured_grouping() -> None:
    nodes, edges = _mixed_graph()
    result = GroupedLayoutEngine(group_by="schema").layout(nodes, edges)
    by_id = {node.id: node for node in result.nodes}
    # Groups run left to right, so the referencing table sits left of its target.
    assert by_id["sessions"].position.x < by_id["users"].position.x
    assert by_id["sessions"].position.y == by_id["users"].position.y
