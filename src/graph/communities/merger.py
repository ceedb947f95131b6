# src/graph/communities/merger.py — v1
"""Reconcile seeded communities with algorithmically detected clusters.

Seeds are authoritative. A detected cluster that overlaps a seed strongly
enough (Jaccard) expands that seed; any other cluster becomes a new,
unparented community to be typed by the classifier.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from loreweave.graph.communities.models import (
    Community,
    CommunityType,
    DetectedCommunity,
)

logger = logging.getLogger(__name__)

# Jaccard overlap a detected cluster must exceed to expand a seed.
MERGE_OVERLAP_THRESHOLD = 0.7


def jaccard_overlap(ids1: Collection[str], ids2: Collection[str]) -> float:
    """|intersection| / |union| of two member sets (0.0 when both are empty)."""
    set1, set2 = set(ids1), set(ids2)
    union = len(set1 | set2)
    if union == 0:
        return 0.0
    return len(set1 & set2) / union


def merge_communities(
    seeded: list[Community],
    detected: list[DetectedCommunity],
    namespace: str = "default",
    threshold: float = MERGE_OVERLAP_THRESHOLD,
) -> list[Community]:
    """Combine both paths into one community list.

    Args:
        seeded: Seed communities; expanded in place when matched.
        detected: Clusters from the Louvain pass.
        namespace: Namespace stamped on new communities.
        threshold: Overlap a cluster must exceed to merge into a seed.

    Returns:
        Seeds (in order) followed by communities created from unmatched clusters.
    """
    merged: list[Community] = list(seeded)
    expanded = 0

    for cluster in detected:
        if not cluster.entity_ids:
            continue

        best_overlap = 0.0
        best_match: Community | None = None
        for seed in seeded:
            overlap = jaccard_overlap(seed.entity_ids, cluster.entity_ids)
            if overlap > best_overlap:
                best_overlap = overlap
                best_match = seed

        if best_match is not None and best_overlap > threshold:
            best_match.entity_ids = list(dict.fromkeys([*best_match.entity_ids, *cluster.entity_ids]))
            best_match.attributes = {
                **best_match.attributes,
                "expandedFromDetection": True,
                "originalSize": len(best_match.entity_ids),
            }
            best_match.touch()
            expanded += 1
            continue

        merged.append(Community(
            id=cluster.id,
            name=f"Community {cluster.level}-{len(cluster.entity_ids)}",
            level=cluster.level,
            entity_ids=list(cluster.entity_ids),
            community_type=CommunityType.CUSTOM,
            namespace=namespace,
            attributes={"detected": True, "modularity": cluster.modularity},
        ))

    logger.info(
        "Merged %d seeded + %d detected: %d seeds expanded, %d new communities",
        len(seeded),
        len(detected),
        expanded,
        len(merged) - len(seeded),
    )
    return merged
