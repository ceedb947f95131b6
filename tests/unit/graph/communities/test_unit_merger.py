# tests/unit/graph/communities/test_unit_merger.py — v1
"""Tests for graph/communities/merger.py: seed/detection reconciliation."""

from __future__ import annotations

import pytest

from loreweave.graph.communities.merger import jaccard_overlap, merge_communities
from loreweave.graph.communities.models import Community, CommunityType, DetectedCommunity


def _seed(ids, **kwargs) -> Community:
    return Community(
        entity_ids=ids,
        community_type=CommunityType.FACTION,
        attributes={"seeded": True, "source": "FOLDER"},
        **kwargs,
    )


class TestJaccardOverlap:
    def test_subset(self):
        assert jaccard_overlap(["a", "b", "c"], ["a", "b", "c", "d"]) == pytest.approx(0.75)

    def test_disjoint(self):
        assert jaccard_overlap(["a"], ["b"]) == 0.0

    def test_both_empty(self):
        assert jaccard_overlap([], []) == 0.0

    def test_symmetric(self):
        assert jaccard_overlap(["a", "b"], ["b", "c"]) == jaccard_overlap(["b", "c"], ["a", "b"])


class TestMergeCommunities:
    def test_high_overlap_expands_seed(self):
        seed = _seed(["a", "b", "c", "d"])
        cluster = DetectedCommunity(entity_ids=["a", "b", "c"])
        result = merge_communities([seed], [cluster])
        assert result == [seed]
        assert seed.size == 4
        assert seed.attributes["expandedFromDetection"] is True
        assert seed.attributes["originalSize"] == 4
        assert seed.attributes["seeded"] is True

    def test_union_keeps_seed_order_first(self):
        seed = _seed(["d", "c", "b", "a", "e", "f", "g", "h", "i"])
        cluster = DetectedCommunity(entity_ids=["a", "b", "c", "d", "e", "f", "g", "h", "z"])
        merge_communities([seed], [cluster])
        assert seed.entity_ids == ["d", "c", "b", "a", "e", "f", "g", "h", "i", "z"]

    def test_low_overlap_creates_new(self):
        seed = _seed(["a", "b", "c", "d", "e"])
        cluster = DetectedCommunity(level=0, entity_ids=["a", "b", "c"], modularity=0.42)
        result = merge_communities([seed], [cluster], namespace="saga")
        assert len(result) == 2
        new = result[1]
        assert new.id == cluster.id
        assert new.name == "Community 0-3"
        assert new.community_type == CommunityType.CUSTOM
        assert new.namespace == "saga"
        assert new.parent_community_id is None
        assert new.backing_node_id is None
        assert new.attributes == {"detected": True, "modularity": 0.42}
        assert seed.size == 5
        assert "expandedFromDetection" not in seed.attributes

    def test_threshold_is_strict(self):
        members = [f"m{i}" for i in range(10)]
        seed = _seed(members)
        cluster = DetectedCommunity(entity_ids=members[:7])
        result = merge_communities([seed], [cluster])
        assert len(result) == 2

    def test_custom_threshold(self):
        seed = _seed(["a", "b", "c", "d", "e"])
        cluster = DetectedCommunity(entity_ids=["a", "b", "c"])
        result = merge_communities([seed], [cluster], threshold=0.5)
        assert result == [seed]

    def test_best_seed_wins(self):
        weak = _seed(["a", "b", "c", "x", "y"])
        strong = _seed(["a", "b", "c", "d"])
        cluster = DetectedCommunity(entity_ids=["a", "b", "c", "d"])
        merge_communities([weak, strong], [cluster])
        assert strong.attributes.get("expandedFromDetection") is True
        assert "expandedFromDetection" not in weak.attributes

    def test_no_seeds(self):
        clusters = [
            DetectedCommunity(level=0, entity_ids=["a", "b", "c"]),
            DetectedCommunity(level=1, entity_ids=["a", "b", "c", "d", "e"]),
        ]
        result = merge_communities([], clusters)
        assert [c.name for c in result] == ["Community 0-3", "Community 1-5"]
        assert [c.level for c in result] == [0, 1]

    def test_empty_cluster_skipped(self):
        assert merge_communities([], [DetectedCommunity(entity_ids=[])]) == []

    def test_nothing_in(self):
        assert merge_communities([], []) == []

    def test_membership_conserved(self):
        seeds = [_seed(["a", "b", "c", "d"]), _seed(["p", "q", "r"])]
        clusters = [
            DetectedCommunity(entity_ids=["a", "b", "c"]),
            DetectedCommunity(entity_ids=["x", "y", "z"]),
            DetectedCommunity(entity_ids=["q", "r", "s", "t"]),
        ]
        expected = {e for c in seeds for e in c.entity_ids} | {
            e for c in clusters for e in c.entity_ids
        }
        result = merge_communities(seeds, clusters)
        assert {e for c in result for e in c.entity_ids} >= expected
