"""Tests for the identity registry: duplicate outputs and duplicate IDs."""

from __future__ import annotations

import random
import threading

from slngraph.graph.registry import IdentityRegistry

SHARED_ID = "{AAAAAAAA-0000-0000-0000-000000000001}"


def test_duplicate_output_keeps_smallest_path(make_node) -> None:
    """Two claimants of one output leave one node and one duplicate record."""
    first = make_node("/src/b/lib.vcxproj", output_path="/out/lib.dll")
    second = make_node("/src/a/lib.vcxproj", output_path="/out/lib.dll")
    registry = IdentityRegistry()

    assert registry.register(first) is True
    assert registry.register(second) is True

    assert registry.nodes() == [second]
    duplicates = registry.duplicates()
    assert len(duplicates) == 1
    assert duplicates[0].kept is second
    assert duplicates[0].rejected == [first]


def test_duplicate_output_later_loser_is_rejected(make_node) -> None:
    """A claimant with a larger path than the holder is not retained."""
    holder = make_node("/src/a/lib.vcxproj", output_path="/out/lib.dll")
    loser = make_node("/src/b/lib.vcxproj", output_path="/OUT/LIB.dll")
    registry = IdentityRegistry()
    registry.register(holder)

    assert registry.register(loser) is False
    assert len(registry) == 1
    assert registry.get("/src/a/lib.vcxproj") is holder
    assert registry.get("/src/b/lib.vcxproj") is None


def test_same_path_registered_twice_is_ignored(make_node) -> None:
    """Registering a descriptor path twice keeps the first node."""
    node = make_node("/src/a/a.vcxproj")
    registry = IdentityRegistry()

    assert registry.register(node)
    assert not registry.register(make_node("/src/a/a.vcxproj"))
    assert registry.nodes() == [node]


def test_duplicate_ids_are_repaired_after_the_first(make_node) -> None:
    """The smallest path keeps a shared ID; later claimants get fresh IDs."""
    a = make_node("/src/a/a.csproj", declared_id=SHARED_ID)
    b = make_node("/src/b/b.csproj", declared_id=SHARED_ID.lower())
    c = make_node("/src/c/c.csproj", declared_id=SHARED_ID)
    registry = IdentityRegistry()
    for node in (c, a, b):
        registry.register(node)

    repairs = registry.resolve_ids()

    assert a.declared_id == SHARED_ID
    assert [repair.node for repair in repairs] == [b, c]
    ids = {node.declared_id.lower() for node in (a, b, c)}
    assert len(ids) == 3
    assert repairs[0].old_id == SHARED_ID.lower()
    assert repairs[0].new_id == b.declared_id
    assert b.declared_id.startswith("{") and b.declared_id.endswith("}")


def test_repaired_ids_are_deterministic(make_node) -> None:
    """Two runs over the same inputs assign the same replacement IDs."""

    def run() -> list[str]:
        registry = IdentityRegistry()
        for path in ("/src/x/x.csproj", "/src/y/y.csproj"):
            registry.register(make_node(path, declared_id=SHARED_ID))
        registry.resolve_ids()
        return [node.declared_id for node in registry.nodes()]

    assert run() == run()


def test_missing_id_is_assigned_without_a_repair(make_node) -> None:
    """A node declaring no ID receives one that is not written back."""
    node = make_node("/src/a/a.vcxproj", declared_id="")
    registry = IdentityRegistry()
    registry.register(node)

    repairs = registry.resolve_ids()

    assert repairs == []
    assert node.declared_id.startswith("{")
    assert node.declared_id == node.declared_id.upper()


def test_outcome_is_independent_of_registration_order(make_node) -> None:
    """Concurrent registration in any order retains the same nodes."""
    paths = [f"/src/p{i:02d}/p.vcxproj" for i in range(40)]

    def run(order: list[str]) -> tuple[list[str], list[list[str]]]:
        registry = IdentityRegistry()
        nodes = [
            make_node(path, output_path=f"/out/shared{int(path[6:8]) % 5}.dll")
            for path in order
        ]
        threads = [threading.Thread(target=registry.register, args=(n,)) for n in nodes]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return (
            [node.full_path for node in registry.nodes()],
            [[n.full_path for n in d.projects] for d in registry.duplicates()],
        )

    shuffled = list(paths)
    random.Random(7).shuffle(shuffled)

    expected = run(paths)
    assert run(list(reversed(paths))) == expected
    assert run(shuffled) == expected
    assert expected[0] == paths[:5]
