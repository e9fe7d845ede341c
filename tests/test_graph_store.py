"""Graph store behaviour tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from core.settings import StatestoreSettings
from graph.errors import PatchApplyError
from graph.events import GraphEvent
from graph.relationship import Relationship
from graph.store import GraphStore


class IsFriendOf(Relationship):
    pass


class LivesInSameTown(Relationship):
    pass


class BestFriendOf(IsFriendOf):
    pass


def build_store() -> tuple[GraphStore[dict[str, Any]], dict[str, Any], dict[str, Any]]:
    store: GraphStore[dict[str, Any]] = GraphStore()
    john = {"name": "John Doe", "email": "john.doe@example.com"}
    smith = {"name": "John Smith", "email": "john.smith@example.com"}
    store.add_node(john)
    store.add_node(smith, "smith")
    return store, john, smith


def recorder(store: GraphStore[Any], event: str = "*", sync: bool = True) -> list[tuple[Any, ...]]:
    calls: list[tuple[Any, ...]] = []
    store.subscribe(event, lambda *args: calls.append(args), sync=sync)
    return calls


def test_add_node_is_idempotent_and_emits_once() -> None:
    store: GraphStore[dict[str, Any]] = GraphStore()
    calls = recorder(store, GraphEvent.NODE_ADDED)
    payload = {"name": "John"}

    first = store.add_node(payload)
    second = store.add_node(payload)

    assert first is second
    assert len(calls) == 1
    assert calls[0] == ("node:added", first)
    assert len(store) == 1


def test_equal_payloads_are_distinct_nodes() -> None:
    store: GraphStore[dict[str, Any]] = GraphStore()
    a = store.add_node({"name": "same"})
    b = store.add_node({"name": "same"})
    assert a is not b
    assert len(store) == 2


def test_string_payloads_are_rejected() -> None:
    store: GraphStore[Any] = GraphStore()
    with pytest.raises(TypeError):
        store.add_node("john")


def test_get_node_resolves_payload_node_and_key() -> None:
    store, john, smith = build_store()

    smith_node = store.get_node("smith")
    john_node = store.get_node(john)

    assert smith_node is not None and smith_node.data is smith
    assert john_node is not None and john_node.data is john
    assert john_node is not smith_node
    assert store.get_node(smith) is smith_node
    assert store.get_node(smith_node) is smith_node
    assert store.get_node("nobody") is None
    assert store.get_node({"name": "John Doe", "email": "john.doe@example.com"}) is None
    assert store.key_for(smith) == "smith"
    assert store.key_for(john) is None
    assert "smith" in store and john in store


def test_edges_are_indexed_on_both_endpoints() -> None:
    store, john, smith = build_store()
    edge = store.add_edge(john, "smith", IsFriendOf())

    assert edge is not None
    assert edge in store.edges_for(john)
    assert edge in store.edges_for(smith)
    assert store.edges() == [edge]

    assert store.remove_edge(edge) is True
    assert store.edges_for(john) == []
    assert store.edges_for(smith) == []


def test_add_edge_with_unknown_endpoint_does_nothing() -> None:
    store, john, _ = build_store()
    calls = recorder(store)
    rel = IsFriendOf()

    assert store.add_edge(john, "ghost", rel) is None
    assert rel.attached is False
    assert calls == []
    assert store.edges_for(john) == []


def test_relationships_for_matches_exact_type_only() -> None:
    store, john, smith = build_store()
    friend = store.add_edge(john, smith, IsFriendOf())
    store.add_edge(john, smith, LivesInSameTown())
    store.add_edge(john, smith, BestFriendOf())

    assert len(store.edges_for(john)) == 3
    assert store.relationships_for(john, IsFriendOf) == [friend]
    assert store.edges_for(smith, IsFriendOf) == [friend]
    assert store.relationships_for("nobody", IsFriendOf) is None


def test_edges_for_known_node_without_matches_is_empty() -> None:
    store, john, _ = build_store()
    assert store.edges_for(john, IsFriendOf) == []
    assert store.edges_for("missing") is None


def test_has_relationship_is_directional() -> None:
    store, john, smith = build_store()
    store.add_edge(john, smith, IsFriendOf())

    assert store.has_relationship(john, "smith", IsFriendOf) is True
    assert store.has_relationship("smith", john, IsFriendOf) is False
    assert store.has_relationship(john, smith, LivesInSameTown) is False
    assert store.has_relationship(john, "nobody", IsFriendOf) is False


def test_remove_edge_by_endpoints_and_type() -> None:
    store, john, smith = build_store()
    calls = recorder(store, GraphEvent.EDGE_REMOVED)
    store.add_edge(john, smith, IsFriendOf())
    store.add_edge(john, smith, IsFriendOf())
    town = store.add_edge(john, smith, LivesInSameTown())

    assert store.remove_edge(john, smith, IsFriendOf) is True
    assert len(calls) == 2
    assert store.edges_for(john) == [town]
    assert store.remove_edge(john, smith, IsFriendOf) is False
    assert store.remove_edge(john, smith) is False


def test_removing_same_edge_twice_emits_once() -> None:
    store, john, smith = build_store()
    calls = recorder(store, GraphEvent.EDGE_REMOVED)
    edge = store.add_edge(john, smith, IsFriendOf())

    assert store.remove_edge(edge) is True
    assert store.remove_edge(edge) is False
    assert len(calls) == 1


def test_remove_node_detaches_edges_and_key() -> None:
    store, john, smith = build_store()
    calls = recorder(store, GraphEvent.NODE_REMOVED)
    edge = store.add_edge(john, smith, IsFriendOf())
    smith_node = store.get_node("smith")

    assert store.remove_node("smith") is True

    assert store.get_node("smith") is None
    assert store.get_node(smith) is None
    assert store.get_node(smith_node) is None
    assert store.edges_for(john) == []
    assert calls == [("node:removed", smith_node, {edge})]
    assert store.remove_node("smith") is False
    assert len(store) == 1


def test_remove_keyless_node_succeeds() -> None:
    store, john, _ = build_store()
    assert store.remove_node(john) is True


def test_self_loop_edge() -> None:
    store, john, _ = build_store()
    edge = store.add_edge(john, john, IsFriendOf())
    assert store.edges_for(john) == [edge]
    assert store.remove_edge(edge) is True
    assert store.edges_for(john) == []


def test_patch_node_unknown_returns_none() -> None:
    store, _, _ = build_store()
    assert store.patch_node("ghost", [{"op": "replace", "path": "/name", "value": "x"}]) is None


def test_patch_node_failure_propagates() -> None:
    store, john, _ = build_store()
    with pytest.raises(PatchApplyError):
        store.patch_node(john, [{"op": "replace", "path": "/nope/x", "value": 1}])


def test_patch_node_emits_one_update_to_sync_subscribers() -> None:
    store, john, _ = build_store()
    calls = recorder(store, GraphEvent.NODE_DATA_UPDATED)

    node = store.patch_node(john, [{"op": "replace", "path": "/email", "value": "new@domain.com"}])

    assert node is store.get_node(john)
    assert john["email"] == "new@domain.com"
    assert len(calls) == 1
    event, updated, operations = calls[0]
    assert event == GraphEvent.NODE_DATA_UPDATED
    assert updated is node
    assert operations[0].path == "/email"


@pytest.mark.asyncio
async def test_deferred_subscribers_see_events_after_one_yield() -> None:
    store: GraphStore[dict[str, Any]] = GraphStore()
    sync_calls = recorder(store, sync=True)
    deferred_calls = recorder(store, sync=False)
    john, smith = {"name": "John"}, {"name": "Smith"}

    store.add_node(john)
    store.add_node(smith)
    store.add_edge(john, smith, IsFriendOf())

    assert [c[0] for c in sync_calls] == ["node:added", "node:added", "edge:added"]
    assert deferred_calls == []
    await asyncio.sleep(0)
    assert [c[0] for c in deferred_calls] == ["node:added", "node:added", "edge:added"]


@pytest.mark.asyncio
async def test_patch_observed_by_deferred_subscriber_after_one_yield() -> None:
    store, john, _ = build_store()
    calls = recorder(store, GraphEvent.NODE_DATA_UPDATED, sync=False)

    store.patch_node(john, [{"op": "replace", "path": "/email", "value": "x@y.z"}])
    assert calls == []
    await asyncio.sleep(0)
    assert len(calls) == 1


def test_default_delivery_mode_comes_from_settings() -> None:
    settings = StatestoreSettings.model_validate({"events": {"default_sync": True}})
    store: GraphStore[dict[str, Any]] = GraphStore(settings=settings)
    calls: list[str] = []
    store.subscribe("*", lambda event, *args: calls.append(event))

    store.add_node({"n": 1})
    assert calls == ["node:added"]


def test_deferred_delivery_without_loop_uses_drain() -> None:
    store: GraphStore[dict[str, Any]] = GraphStore()
    calls = recorder(store, sync=False)
    store.add_node({"n": 1})

    assert calls == []
    store.scheduler.drain()
    assert [c[0] for c in calls] == ["node:added"]


def test_iterate_yields_each_node_once() -> None:
    store: GraphStore[dict[str, Any]] = GraphStore()
    payloads = [{"i": i} for i in range(5)]
    for payload in payloads:
        store.add_node(payload)

    nodes = list(store.iterate())
    assert [node.data for node in nodes] == payloads

    evens = list(store.iterate(lambda node: node.data["i"] % 2 == 0))
    assert [node.data["i"] for node in evens] == [0, 2, 4]

    iterator = store.iterate()
    assert len(list(iterator)) == 5
    assert list(iterator) == []


def test_reset_clears_everything_silently() -> None:
    store, john, smith = build_store()
    store.add_edge(john, smith, IsFriendOf())
    calls = recorder(store)

    store.reset()

    assert len(store) == 0
    assert store.get_node("smith") is None
    assert store.edges() == []
    assert calls == []
    store.add_node(john)
    assert calls == []


def test_reset_cancels_payload_forwarding() -> None:
    store, john, _ = build_store()
    node = store.get_node(john)
    store.reset()
    assert node.subscriber_count == 0


def test_strict_relationship_reuse_is_refused() -> None:
    store, john, smith = build_store()
    rel = IsFriendOf()
    store.add_edge(john, smith, rel)
    with pytest.raises(RuntimeError):
        store.add_edge(smith, john, rel)


@pytest.mark.parametrize(
    "operation",
    [
        {"op": "add", "path": "/email"},
        {"op": "replace", "path": "email", "value": "y"},
    ],
)
def test_rejected_patch_emits_no_update(operation: dict[str, Any]) -> None:
    store, john, _ = build_store()
    calls = recorder(store, GraphEvent.NODE_DATA_UPDATED)
    before = dict(john)

    with pytest.raises(PatchApplyError):
        store.patch_node(john, [operation])

    assert john == before
    assert calls == []


def test_root_patch_updates_payload_and_emits_once() -> None:
    store, john, _ = build_store()
    calls = recorder(store, GraphEvent.NODE_DATA_UPDATED)

    store.patch_node(john, [{"op": "replace", "path": "", "value": {"name": "Johnny"}}])

    assert john == {"name": "Johnny"}
    assert store.get_node({"name": "Johnny"}) is None
    assert store.get_node(john).data is john
    assert len(calls) == 1


def test_has_relationship_requires_matching_source() -> None:
    store, john, smith = build_store()
    store.add_edge(john, smith, IsFriendOf())

    assert store.has_relationship(smith, smith, IsFriendOf) is False
    assert store.has_relationship(john, smith, IsFriendOf) is True
