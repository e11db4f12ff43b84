from __future__ import annotations

import random

import pytest

from adapters.layout.ranked import RankedLayoutEngine, port_sides
from domain.models import Direction, LayoutOptions
from domain.services.node_sizing import estimate_size
from tests.helpers.graph_fixtures import chain, make_edge, make_node


def test_chain_ranks_follow_edges() -> None:
    nodes, edges = chain("a", "b", "c")
    ranks = RankedLayoutEngine().assign_ranks(nodes, edges)
    assert ranks == {"a": 0, "b": 1, "c": 2}


def test_sources_are_pulled_next_to_their_successor() -> None:
    nodes, edges = chain("a", "b", "c", "d")
    nodes.append(make_node("late"))
    edges.append(make_edge("late", "d"))
    ranks = RankedLayoutEngine().assign_ranks(nodes, edges)
    assert ranks["late"] == ranks["d"] - 1


def test_top_to_bottom_orders_ranks_downwards() -> None:
    nodes, edges = chain("a", "b", "c")
    result = RankedLayoutEngine().auto_layout(nodes, edges)
    by_id = {node.id: node for node in result.nodes}
    assert by_id["a"].position.y < by_id["b"].position.y < by_id["c"].position.y
    assert by_id["a"].position.y == 50


@pytest.mark.parametrize(
    ("direction", "axis", "descending"),
    [("LR", "x", False), ("BT", "y", True), ("RL", "x", True)],
)
def test_direction_controls_rank_axis(direction: Direction, axis: str, descending: bool) -> None:
    nodes, edges = chain("a", "b", "c")
    result = RankedLayoutEngine(LayoutOptions(direction=direction)).layout(nodes, edges)
    values = [getattr(node.position, axis) for node in result.nodes]
    assert values == sorted(values, reverse=descending)
    assert values[0] != values[1] != values[2]


@pytest.mark.parametrize(
    ("direction", "target", "source"),
    [
        ("TB", "top", "bottom"),
        ("BT", "bottom", "top"),
        ("LR", "left", "right"),
        ("RL", "right", "left"),
    ],
)
def test_port_sides_follow_direction(direction: Direction, target: str, source: str) -> None:
    assert port_sides(direction) == (target, source)
    nodes, edges = chain("a", "b")
    result = RankedLayoutEngine(LayoutOptions(direction=direction)).layout(nodes, edges)
    assert all(node.target_position == target for node in result.nodes)
    assert all(node.source_position == source for node in result.nodes)


def test_rank_spacing_measured_between_tallest_members() -> None:
    nodes = [make_node("a", columns=4), make_node("b"), make_node("c")]
    edges = [make_edge("a", "c"), make_edge("b", "c")]
    result = RankedLayoutEngine().layout(nodes, edges)
    by_id = {node.id: node for node in result.nodes}
    tallest = estimate_size(by_id["a"]).height
    assert by_id["c"].position.y - by_id["a"].position.y == pytest.approx(tallest + 150)


def test_nodes_on_a_rank_keep_separation() -> None:
    nodes = [make_node("root")] + [make_node(f"leaf{idx}", columns=idx) for idx in range(5)]
    edges = [make_edge("root", f"leaf{idx}") for idx in range(5)]
    result = RankedLayoutEngine().layout(nodes, edges)
    leaves = sorted(
        (node for node in result.nodes if node.id.startswith("leaf")),
        key=lambda node: node.position.x,
    )
    for left, right in zip(leaves, leaves[1:]):
        gap = right.position.x - (left.position.x + estimate_size(left).width)
        assert gap >= 100 - 1e-6


def test_layout_returns_copies_and_keeps_order() -> None:
    nodes, edges = chain("a", "b")
    result = RankedLayoutEngine().layout(nodes, edges)
    assert [node.id for node in result.nodes] == ["a", "b"]
    assert all(node.position.x == 0 for node in nodes)
    assert result.nodes[0] is not nodes[0]


def test_protected_edges_untouched_and_others_restyled() -> None:
    nodes, _ = chain("a", "b", "c")
    protected = make_edge("a", "b", edge_type="relationship")
    plain = make_edge("b", "c")
    result = RankedLayoutEngine().layout(nodes, [protected, plain])
    assert result.edges[0] is protected
    assert result.edges[1].type in {"straight", "smoothstep"}


def test_styling_skipped_without_crossing_minimisation() -> None:
    nodes, edges = chain("a", "b")
    result = RankedLayoutEngine(LayoutOptions(minimize_edge_crossings=False)).layout(nodes, edges)
    assert result.edges == edges


def test_empty_input_gives_empty_result() -> None:
    result = RankedLayoutEngine().layout([], [])
    assert result.nodes == []
    assert result.edges == []


def test_dangling_edges_and_cycles_are_tolerated() -> None:
    nodes, edges = chain("a", "b", "c")
    edges += [make_edge("c", "a"), make_edge("b", "ghost"), make_edge("b", "b")]
    result = RankedLayoutEngine().layout(nodes, edges)
    assert {node.id for node in result.nodes} == {"a", "b", "c"}
    assert len(result.edges) == len(edges)
    positions = {(node.position.x, node.position.y) for node in result.nodes}
    assert len(positions) == 3


def test_layout_is_deterministic() -> None:
    rng = random.Random(5)
    nodes = [make_node(f"t{idx}", columns=rng.randint(0, 6)) for idx in range(40)]
    edges = [make_edge(f"t{rng.randrange(40)}", f"t{rng.randrange(40)}") for _ in range(60)]
    first = RankedLayoutEngine().layout(nodes, edges)
    second = RankedLayoutEngine().layout(nodes, edges)
    assert [node.position for node in first.nodes] == [node.position for node in second.nodes]


def test_long_edges_do_not_overlap_nodes_on_a_rank() -> None:
    nodes = [make_node(node_id) for node_id in ["a", "b", "c", "d"]]
    edges = [make_edge("a", "b"), make_edge("b", "c"), make_edge("a", "c"), make_edge("a", "d")]
    result = RankedLayoutEngine().layout(nodes, edges)
    by_rank: dict[float, list[float]] = {}
    for node in result.nodes:
        by_rank.setdefault(node.position.y, []).append(node.position.x)
    for xs in by_rank.values():
        xs.sort()
        for left, right in zip(xs, xs[1:]):
            assert right - left >= estimate_size(nodes[0]).width + 100 - 1e-6


def test_unaligned_ranks_start_flush() -> None:
    nodes = [make_node("root"), make_node("x"), make_node("y"), make_node("z")]
    edges = [make_edge("root", "x"), make_edge("root", "y"), make_edge("root", "z")]
    result = RankedLayoutEngine(LayoutOptions(align_nodes=False)).layout(nodes, edges)
    assert min(node.position.x for node in result.nodes) == 50
    assert result.nodes[0].position.x == 50


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_random_acyclic_graphs_rank_targets_below_sources(seed: int) -> None:
    rng = random.Random(seed)
    count = 30
    nodes = [make_node(f"t{idx}", columns=rng.randint(0, 8)) for idx in range(count)]
    # Edges only run from a lower to a higher index, so the graph is acyclic.
    pairs = {tuple(sorted(rng.sample(range(count), 2))) for _ in range(45)}
    edges = [make_edge(f"t{source}", f"t{target}") for source, target in sorted(pairs)]

    engine = RankedLayoutEngine()
    ranks = engine.assign_ranks(nodes, edges)
    result = engine.layout(nodes, edges)
    by_id = {node.id: node for node in result.nodes}
    for edge in edges:
        assert ranks[edge.source] < ranks[edge.target]
        assert by_id[edge.source].position.y < by_id[edge.target].position.y


def test_long_chain_ranks_are_consecutive() -> None:
    ids = [f"n{idx}" for idx in range(5000)]
    nodes, edges = chain(*ids)
    ranks = RankedLayoutEngine().assign_ranks(nodes, edges)
    assert [ranks[node_id] for node_id in ids] == list(range(5000))
