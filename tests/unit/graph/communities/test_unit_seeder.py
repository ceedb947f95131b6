# tests/unit/graph/communities/test_unit_seeder.py — v1
"""Tests for graph/communities/seeder.py: faction container seeding."""

from __future__ import annotations

from datetime import datetime, timezone

from loreweave.core.models import GraphNode
from loreweave.graph.communities.models import CommunityType
from loreweave.graph.communities.seeder import (
    ContainmentTree,
    find_leader,
    seed_communities,
)


def _container(node_id, kind="FACTION", parent=None, **kwargs) -> GraphNode:
    return GraphNode(
        id=node_id, is_entity_node=False, entity_kind=kind,
        parent_container_id=parent, **kwargs,
    )


def _entity(node_id, parent=None, **kwargs) -> GraphNode:
    return GraphNode(id=node_id, entity_kind="CHARACTER", parent_container_id=parent, **kwargs)


class TestContainmentTree:
    def test_descendants_through_nested_containers(self):
        tree = ContainmentTree([
            _container("guild"),
            _entity("rook", "guild"),
            _container("vault", kind="FOLDER", parent="guild"),
            _entity("keeper", "vault"),
        ])
        assert tree.descendant_entities("guild") == ["rook", "keeper"]

    def test_entities_are_leaves(self):
        tree = ContainmentTree([
            _container("guild"),
            _entity("rook", "guild"),
            _entity("pet", "rook"),
        ])
        assert tree.descendant_entities("guild") == ["rook"]

    def test_ancestors(self):
        tree = ContainmentTree([
            _container("world", kind="FOLDER"),
            _container("realm", parent="world"),
            _entity("hero", "realm"),
        ])
        assert list(tree.ancestors("hero")) == ["realm", "world"]

    def test_cyclic_containment_terminates(self):
        tree = ContainmentTree([
            _container("f1", parent="f2"),
            _container("f2", parent="f1"),
            _entity("a", "f1"),
        ])
        assert list(tree.ancestors("f1")) == ["f2"]
        assert tree.descendant_entities("f1") == ["a"]


class TestSeedCommunities:
    def test_thieves_guild(self, guild_nodes):
        seeds = seed_communities(guild_nodes, namespace="saga")
        assert len(seeds) == 1
        guild = seeds[0]
        assert guild.entity_ids == ["rook", "vex", "moth"]
        assert guild.community_type == CommunityType.FACTION
        assert guild.level == 0
        assert guild.name == "Thieves Guild"
        assert guild.description == "Thieves Guild faction"
        assert guild.backing_node_id == "guild"
        assert guild.entity_kind_of_backing == "FACTION"
        assert guild.namespace == "saga"
        assert guild.attributes == {"seeded": True, "source": "FOLDER"}

    def test_timestamps_from_container(self, guild_nodes):
        guild = seed_communities(guild_nodes)[0]
        assert guild.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_leader_by_subtype(self, guild_nodes):
        assert seed_communities(guild_nodes)[0].leader_id == "vex"

    def test_content_used_as_description(self):
        seeds = seed_communities([
            _container("guild", content="Cutpurses of the lower city"),
            _entity("rook", "guild"),
        ])
        assert seeds[0].description == "Cutpurses of the lower city"

    def test_label_falls_back_to_id(self):
        seeds = seed_communities([_container("guild"), _entity("rook", "guild")])
        assert seeds[0].name == "guild"

    def test_only_faction_containers(self):
        seeds = seed_communities([
            _container("chapter1", kind="FOLDER"),
            _entity("rook", "chapter1"),
            _container("band", kind="faction"),
            _entity("vex", "band"),
        ])
        assert [s.backing_node_id for s in seeds] == ["band"]

    def test_empty_container_not_seeded(self):
        assert seed_communities([_container("guild")]) == []

    def test_no_nodes(self):
        assert seed_communities([]) == []


class TestFactionHierarchy:
    def test_nested_factions(self):
        seeds = seed_communities([
            _container("empire"),
            _container("legion", parent="empire"),
            _entity("e1", "empire"),
            _entity("s1", "legion"),
            _entity("s2", "legion"),
        ])
        by_backing = {s.backing_node_id: s for s in seeds}
        empire, legion = by_backing["empire"], by_backing["legion"]

        assert empire.entity_ids == ["e1", "s1", "s2"]
        assert legion.entity_ids == ["s1", "s2"]
        assert legion.parent_community_id == empire.id
        assert empire.child_community_ids == [legion.id]
        assert (empire.level, legion.level) == (0, 1)

    def test_skips_non_faction_intermediate(self):
        seeds = seed_communities([
            _container("empire"),
            _container("province", kind="FOLDER", parent="empire"),
            _container("legion", parent="province"),
            _entity("s1", "legion"),
        ])
        by_backing = {s.backing_node_id: s for s in seeds}
        assert by_backing["legion"].parent_community_id == by_backing["empire"].id

    def test_deep_chain_levels(self):
        seeds = seed_communities([
            _container("cell", parent="legion"),
            _container("legion", parent="empire"),
            _container("empire"),
            _entity("spy", "cell"),
        ])
        levels = {s.backing_node_id: s.level for s in seeds}
        assert levels == {"empire": 0, "legion": 1, "cell": 2}

    def test_cyclic_containment_gives_forest(self):
        seeds = seed_communities([
            _container("f1", parent="f2"),
            _container("f2", parent="f1"),
            _entity("a", "f1"),
            _entity("b", "f2"),
        ])
        roots = [s for s in seeds if s.parent_community_id is None]
        assert len(seeds) == 2
        assert len(roots) == 1
        child = next(s for s in seeds if s.parent_community_id is not None)
        assert child.level == roots[0].level + 1


class TestFindLeader:
    def test_fallback_first_member(self):
        by_id = {n.id: n for n in [_entity("a"), _entity("b")]}
        assert find_leader(["a", "b"], by_id) == "a"

    def test_keyword_match(self):
        by_id = {n.id: n for n in [_entity("a"), _entity("b", entity_subtype="Queen")]}
        assert find_leader(["a", "b"], by_id) == "b"

    def test_no_members(self):
        assert find_leader([], {}) is None
