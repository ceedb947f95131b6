# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides small narrative graphs (a family, a guild, two rival cliques),
clean settings and a fresh community index. Everything is in memory.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from loreweave.config.settings import Settings
from loreweave.core.models import GraphEdge, GraphNode
from loreweave.graph.communities.index import CommunityIndex
from loreweave.graph.communities.models import Community, CommunityType
from loreweave.logging.context import clear_context


def character(node_id: str, **kwargs) -> GraphNode:
    return GraphNode(id=node_id, entity_kind="CHARACTER", label=node_id.title(), **kwargs)


def edge(source: str, target: str, relation: str = "KNOWS", **kwargs) -> GraphEdge:
    return GraphEdge(source_id=source, target_id=target, relation_type=relation, **kwargs)


# === FIXTURES: Graphs ===


@pytest.fixture
def family_nodes() -> list[GraphNode]:
    """Four characters of one bloodline."""
    return [character(n) for n in ("a", "b", "c", "d")]


@pytest.fixture
def family_edges() -> list[GraphEdge]:
    """A-B child, B-C sibling, C-D spouse."""
    return [
        edge("a", "b", "CHILD_OF"),
        edge("b", "c", "SIBLING_OF"),
        edge("c", "d", "SPOUSE_OF"),
    ]


@pytest.fixture
def guild_nodes() -> list[GraphNode]:
    """Thieves Guild container holding three characters, one of them its leader."""
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        GraphNode(
            id="guild",
            is_entity_node=False,
            entity_kind="FACTION",
            label="Thieves Guild",
            created_at=created,
            updated_at=created,
        ),
        character("rook", parent_container_id="guild"),
        character("vex", parent_container_id="guild", entity_subtype="Guild Leader"),
        character("moth", parent_container_id="guild"),
    ]


@pytest.fixture
def rival_nodes() -> list[GraphNode]:
    """Two households of four characters each."""
    return [character(f"{house}{i}") for house in ("stark", "lann") for i in range(1, 5)]


@pytest.fixture
def rival_edges() -> list[GraphEdge]:
    """Each household fully connected, one faint link between them."""
    edges = []
    for house in ("stark", "lann"):
        members = [f"{house}{i}" for i in range(1, 5)]
        for i, source in enumerate(members):
            for target in members[i + 1:]:
                edges.append(edge(source, target, "KNOWS"))
    edges.append(edge("stark1", "lann1", "CO_OCCURS", weight=0.1))
    return edges


# === FIXTURES: Infrastructure ===


@pytest.fixture
def settings() -> Settings:
    """Defaults only, no .env lookup."""
    return Settings(_env_file=None)


@pytest.fixture
def index() -> CommunityIndex:
    return CommunityIndex()


@pytest.fixture
def populated_index() -> CommunityIndex:
    """Index with a seeded faction, a nested cell and a detected group sharing 'x'."""
    idx = CommunityIndex()
    idx.add_community(Community(
        id="order",
        name="Order of the Lamp",
        entity_ids=["a", "b", "c", "x"],
        community_type=CommunityType.FACTION,
        namespace="saga",
        attributes={"seeded": True, "source": "FOLDER"},
    ))
    idx.create_community(
        "Inner Cell",
        ["a", "b"],
        namespace="saga",
        parent_community_id="order",
        id="cell",
        community_type=CommunityType.FACTION,
    )
    idx.add_community(Community(
        id="crew",
        name="Community 0-3",
        entity_ids=["x", "y", "z"],
        namespace="saga",
        attributes={"detected": True, "modularity": 0.3},
    ))
    return idx


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()
