# src/graph/taxonomy.py — v1
"""Lookup tables driving the clustering and classification heuristics.

Kept as data so new relation types or keywords only need a table entry.
All keys are upper-case; callers upper-case the raw values before lookup.
"""

from __future__ import annotations

# Multipliers applied to an edge's base weight, by relation type.
EDGE_TYPE_BOOSTS: dict[str, float] = {
    "KNOWS": 1.5,
    "CO_OCCURS": 1.3,
    "MEMBER_OF": 2.0,
    "RELATED_TO": 1.2,
    "APPEARS_IN": 1.4,
    "BELONGS_TO": 1.8,
    "CHILD_OF": 2.5,
    "PARENT_OF": 2.5,
    "SIBLING_OF": 2.0,
    "SPOUSE_OF": 2.5,
}

# Relation type fragments that mark an edge as kinship (substring match).
KINSHIP_RELATIONS: tuple[str, ...] = (
    "CHILD_OF",
    "PARENT_OF",
    "SIBLING_OF",
    "SPOUSE_OF",
    "RELATED_TO",
)

# Subtype fragments that mark a seed member as the community leader.
LEADER_KEYWORDS: tuple[str, ...] = ("LEADER", "CHIEF", "KING", "QUEEN", "PROTAGONIST")

# Container kinds that produce a seed community.
SEED_CONTAINER_KINDS: frozenset[str] = frozenset({"FACTION"})

# Entity kinds referenced by the classifier.
KIND_CHARACTER = "CHARACTER"
KIND_LOCATION = "LOCATION"
KIND_NPC = "NPC"


def edge_type_boost(relation_type: str) -> float:
    """Return the weight multiplier for a relation type (1.0 if unlisted)."""
    return EDGE_TYPE_BOOSTS.get(relation_type.upper(), 1.0)


def is_kinship_relation(relation_type: str) -> bool:
    """True if the relation type contains any kinship marker."""
    upper = relation_type.upper()
    return any(rel in upper for rel in KINSHIP_RELATIONS)


def is_leader_subtype(subtype: str | None) -> bool:
    """True if the entity subtype contains any leadership keyword."""
    if not subtype:
        return False
    upper = subtype.upper()
    return any(keyword in upper for keyword in LEADER_KEYWORDS)
