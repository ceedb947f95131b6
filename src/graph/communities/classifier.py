# src/graph/communities/classifier.py — v1
"""Community classifier: semantic type, description and label.

Pure functions: they read the community, node records and edges and never
modify them (``classify_all`` is the one helper that annotates in place).

Decision order, first match wins:
  1. seeded communities keep their type
  2. all CHARACTER -> FAMILY (kinship edges dominate) or FACTION
  3. all LOCATION -> LOCATION_GROUP
  4. NPC share above 60% -> PROFESSION
  5. otherwise CUSTOM
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping

from loreweave.core.models import GraphEdge, GraphNode
from loreweave.graph.communities.models import Community, CommunityType
from loreweave.graph.taxonomy import (
    KIND_CHARACTER,
    KIND_LOCATION,
    KIND_NPC,
    is_kinship_relation,
)

logger = logging.getLogger(__name__)

# Share of intra-community edges that must be kinship for a FAMILY.
FAMILY_EDGE_SHARE = 0.5
# Share of NPC members above which a community is a PROFESSION.
PROFESSION_NPC_SHARE = 0.6

NodeLookup = Mapping[str, GraphNode]


def index_nodes(nodes: Iterable[GraphNode] | NodeLookup) -> NodeLookup:
    if isinstance(nodes, Mapping):
        return nodes
    return {node.id: node for node in nodes}


def member_kind_counts(community: Community, nodes: NodeLookup) -> tuple[Counter[str], int]:
    """Per-kind member counts (first-seen order) and the number of known members."""
    counts: Counter[str] = Counter()
    known = 0
    for entity_id in community.entity_ids:
        node = nodes.get(entity_id)
        if node is None:
            continue
        known += 1
        if node.kind:
            counts[node.kind] += 1
    return counts, known


def is_family_cluster(entity_ids: Iterable[str], edges: Iterable[GraphEdge]) -> bool:
    """More than half of the intra-community edges are kinship relations."""
    members = set(entity_ids)
    total = 0
    kinship = 0
    for edge in edges:
        if edge.source_id in members and edge.target_id in members:
            total += 1
            if is_kinship_relation(edge.relation_type):
                kinship += 1
    if total == 0:
        return False
    return kinship / total > FAMILY_EDGE_SHARE


def classify_community(
    community: Community,
    nodes: Iterable[GraphNode] | NodeLookup,
    edges: Iterable[GraphEdge],
) -> CommunityType:
    """Pick the community type. Always returns a value (CUSTOM fallback)."""
    if community.is_seeded:
        return community.community_type

    counts, known = member_kind_counts(community, index_nodes(nodes))
    if not counts:
        return CommunityType.CUSTOM

    # most_common keeps insertion order on ties
    dominant, max_count = counts.most_common(1)[0]
    homogeneous = max_count == known

    if dominant == KIND_CHARACTER and homogeneous:
        if is_family_cluster(community.entity_ids, edges):
            return CommunityType.FAMILY
        return CommunityType.FACTION

    if dominant == KIND_LOCATION and homogeneous:
        return CommunityType.LOCATION_GROUP

    if dominant == KIND_NPC and max_count / known > PROFESSION_NPC_SHARE:
        return CommunityType.PROFESSION

    return CommunityType.CUSTOM


def describe_community(community: Community, nodes: Iterable[GraphNode] | NodeLookup) -> str:
    """e.g. 'A faction containing 3 characters, 2 locations'."""
    counts, _ = member_kind_counts(community, index_nodes(nodes))
    kinds = ", ".join(
        f"{count} {kind.lower()}{'s' if count > 1 else ''}" for kind, count in counts.items()
    )
    type_name = community.community_type.value.lower().replace("_", " ")
    return f"A {type_name} containing {kinds}"


def label_community(community: Community, nodes: Iterable[GraphNode] | NodeLookup) -> str:
    """Short label from the first members' display names."""
    lookup = index_nodes(nodes)
    names = []
    for entity_id in community.entity_ids[:5]:
        node = lookup.get(entity_id)
        names.append(node.label if node is not None and node.label else entity_id)
    if not names:
        return "Unknown Group"
    if len(names) == 1:
        return names[0]
    return f"{names[0]}'s Circle"


def classify_all(
    communities: list[Community],
    nodes: Iterable[GraphNode] | NodeLookup,
    edges: Iterable[GraphEdge],
) -> list[Community]:
    """Annotate every community and drop the empty ones."""
    lookup = index_nodes(nodes)
    edge_list = list(edges)
    kept: list[Community] = []

    for community in communities:
        if not community.entity_ids:
            logger.debug("Dropping empty community %s", community.id)
            continue
        community.community_type = classify_community(community, lookup, edge_list)
        community.description = describe_community(community, lookup)
        if community.attributes.get("detected"):
            community.attributes["label"] = label_community(community, lookup)
        kept.append(community)

    by_type = Counter(c.community_type.value for c in kept)
    logger.info("Classified %d communities: %s", len(kept), dict(by_type))
    return kept
