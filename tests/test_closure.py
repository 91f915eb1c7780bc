"""Tests for build closure computation."""

from __future__ import annotations

import logging

import pytest

from slngraph.graph import EdgeKind, ProjectGraph
from slngraph.graph.closure import BuildClosureComputer


@pytest.fixture
def cyclic_graph(make_node):
    """a -> b -> c -> a, plus d -> e and an isolated f."""
    nodes = {name: make_node(f"/src/{name}/{name}.vcxproj") for name in "abcdef"}
    graph = ProjectGraph(nodes.values())
    for source, target in (("a", "b"), ("b", "c"), ("c", "a"), ("d", "e")):
        graph.add_edge(nodes[source], nodes[target], EdgeKind.EXPLICIT)
    return graph, nodes


def _names(members) -> list[str]:
    return [node.display_name for node in members]


def test_cycle_is_fully_included(cyclic_graph) -> None:
    """Seeding one member of a cycle pulls in the whole cycle."""
    graph, nodes = cyclic_graph

    closure = BuildClosureComputer(graph).compute([nodes["a"].full_path])

    assert _names(closure.in_build) == ["a", "b", "c"]
    assert _names(closure.ignored) == ["d", "e", "f"]
    assert not closure.all_mode
    assert nodes["b"] in closure
    assert nodes["d"] not in closure


def test_closure_is_monotonic_in_seeds(cyclic_graph) -> None:
    """Adding seeds never removes members."""
    graph, nodes = cyclic_graph
    computer = BuildClosureComputer(graph)

    small = computer.compute([nodes["c"].full_path])
    large = computer.compute([nodes["c"].full_path, nodes["d"].full_path])

    assert set(_names(small.in_build)) <= set(_names(large.in_build))
    assert _names(large.in_build) == ["a", "b", "c", "d", "e"]


def test_seed_matching_is_case_insensitive(cyclic_graph) -> None:
    """Seeds match retained nodes regardless of path case."""
    graph, nodes = cyclic_graph

    closure = BuildClosureComputer(graph).compute([nodes["e"].full_path.upper()])

    assert _names(closure.in_build) == ["e"]


def test_all_mode_includes_everything(cyclic_graph) -> None:
    """Without seeds every node is in the build."""
    graph, _ = cyclic_graph

    closure = BuildClosureComputer(graph).compute(None)

    assert closure.all_mode
    assert _names(closure.in_build) == list("abcdef")
    assert closure.ignored == []
    assert closure.seeds == [node.key for node in graph.nodes]


def test_unknown_seed_is_reported(cyclic_graph, caplog: pytest.LogCaptureFixture) -> None:
    """A seed naming no retained node is logged and otherwise ignored."""
    graph, _ = cyclic_graph

    with caplog.at_level(logging.WARNING):
        closure = BuildClosureComputer(graph).compute(["/src/gone/gone.vcxproj"])

    assert closure.in_build == []
    assert "is not a retained project" in caplog.text
