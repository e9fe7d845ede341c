"""Top-level wiring for CLI use: settings, store, journal and scenario runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from core.event_journal import EventJournal
from core.policy_runtime import load_effective_config, load_yaml
from core.settings import StatestoreSettings
from graph.conditions import EdgeCondition
from graph.edge import Edge
from graph.relationship import Relationship
from graph.store import GraphStore

logger = logging.getLogger("statestore.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    settings: StatestoreSettings
    store: GraphStore[Any]
    journal: EventJournal | None = None


@dataclass
class ScenarioResult:
    """Outcome of a scripted scenario run."""

    events: list[str] = field(default_factory=list)
    steps: int = 0
    adjacency: dict[str, list[str]] = field(default_factory=dict)


class Orchestrator:
    """Creates and wires runtime components."""

    def __init__(self, root: Path | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()

    def build(self, journal_path: Path | None = None) -> RuntimeBundle:
        config = load_effective_config(self.root)
        settings = StatestoreSettings.from_mapping(config)
        store: GraphStore[Any] = GraphStore(settings=settings)

        if journal_path is None and settings.logging.journal_path:
            journal_path = self.root / settings.logging.journal_path
        journal = EventJournal(journal_path).attach(store) if journal_path else None

        return RuntimeBundle(config=config, settings=settings, store=store, journal=journal)


class ScenarioRunner:
    """Replays a YAML scenario of nodes, edges and mutation steps against a store."""

    def __init__(self, store: GraphStore[Any]) -> None:
        self.store = store
        self._kinds: dict[str, type[Relationship[Any]]] = {}
        self._names: dict[Any, str] = {}

    def relationship_type(self, name: str) -> type[Relationship[Any]]:
        """One Relationship subclass per kind name, so exact-type matching works."""
        if name not in self._kinds:
            self._kinds[name] = type(name, (Relationship,), {})
        return self._kinds[name]

    def run_file(self, path: Path) -> ScenarioResult:
        script = load_yaml(path)
        if not script:
            raise ValueError(f"Scenario is empty or missing: {path}")
        return self.run(script)

    def run(self, script: dict[str, Any]) -> ScenarioResult:
        result = ScenarioResult()
        unsubscribe = self.store.subscribe(
            "*", lambda event, *args: result.events.append(self._describe(event, args)), sync=True
        )
        try:
            for item in script.get("nodes", []):
                key = str(item["key"])
                node = self.store.add_node(dict(item.get("data") or {}), key=key)
                self._names[node] = key
            for item in script.get("edges", []):
                self._add_edge(item)
            self.store.scheduler.drain()
            for step in script.get("steps", []):
                self._apply_step(step)
                self.store.scheduler.drain()
                result.steps += 1
        finally:
            unsubscribe()

        for node in self.store.iterate():
            label = self._label(node)
            result.adjacency[label] = [
                f"{edge.relationship.kind}:{self._label(edge.other(node))}"
                for edge in self.store.edges_for(node) or []
            ]
        return result

    def _add_edge(self, item: dict[str, Any]) -> None:
        relationship = self.relationship_type(str(item["relationship"]))()
        condition: EdgeCondition | None = None
        required = item.get("requires")
        if required:
            required_type = self.relationship_type(str(required))

            def requires_live_edge(store: GraphStore[Any], source: Any, target: Any, _rel: Any) -> bool:
                return store.has_relationship(source, target, required_type)

            condition = requires_live_edge

        edge = self.store.add_edge(item["source"], item["target"], relationship, condition=condition)
        if edge is None:
            logger.warning("Skipping edge with unknown endpoint: %s", item)

    def _apply_step(self, step: dict[str, Any]) -> None:
        if "patch" in step:
            if self.store.patch_node(step["patch"], step.get("operations", [])) is None:
                logger.warning("Patch target not found: %s", step["patch"])
        elif "remove_edge" in step:
            wanted = step["remove_edge"]
            self.store.remove_edge(
                wanted["source"], wanted["target"], self.relationship_type(str(wanted["relationship"]))
            )
        elif "remove_node" in step:
            self.store.remove_node(step["remove_node"])
        else:
            raise ValueError(f"Unknown scenario step: {step}")

    def _label(self, node: Any) -> str:
        return self.store.key_for(node) or self._names.get(node) or repr(node.data)

    def _describe(self, event: str, args: tuple[Any, ...]) -> str:
        subject = args[0]
        if isinstance(subject, Edge):
            return (
                f"{event} {self._label(subject.source)} "
                f"-[{subject.relationship.kind}]-> {self._label(subject.target)}"
            )
        return f"{event} {self._label(subject)}"
