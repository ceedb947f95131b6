# src/api/facade.py — v1
"""Public API facade: single entry point for community detection.

Usage:
    from loreweave.api.facade import detect_communities
    communities = detect_communities(nodes, edges, namespace="saga", index=index)

Pipeline:
  1. build the weighted entity graph
  2. seed communities from faction containers (optional)
  3. multi-level Louvain clustering
  4. merge seeds with detected clusters
  5. classify and describe every community
  6. store into the given CommunityIndex

The computation is synchronous and CPU-bound. ``detect_communities_async``
runs it in a worker thread for hosts with an event loop; there is no
cancellation, so callers needing a deadline must discard late results.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from loreweave.api.models import DetectionOptions
from loreweave.config.settings import Settings
from loreweave.core.models import GraphEdge, GraphNode
from loreweave.graph.builder import build_entity_graph
from loreweave.graph.communities.classifier import classify_all
from loreweave.graph.communities.index import CommunityIndex
from loreweave.graph.communities.louvain import LouvainClusterer
from loreweave.graph.communities.merger import merge_communities
from loreweave.graph.communities.models import Community
from loreweave.graph.communities.seeder import seed_communities
from loreweave.logging.context import clear_context, set_detection_context, set_stage_context

logger = logging.getLogger(__name__)

NodeInput = GraphNode | Mapping[str, Any]
EdgeInput = GraphEdge | Mapping[str, Any]


def detect_communities(
    nodes: Iterable[NodeInput],
    edges: Iterable[EdgeInput],
    namespace: str = "default",
    options: DetectionOptions | Mapping[str, Any] | None = None,
    index: CommunityIndex | None = None,
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> list[Community]:
    """Detect, merge and classify communities for one graph.

    Args:
        nodes: Entity and container nodes (models or dicts, camelCase accepted).
        edges: Typed relationships (models or dicts).
        namespace: Isolation key stamped on every community.
        options: Per-run overrides of the Settings defaults.
        index: Store to insert the result into. None = return only.
        settings: Global settings. Loaded from .env if None.
        rng: Random source for the shuffle; overrides ``options.seed``.

    Returns:
        The final communities (seeded first, then detected).

    Raises:
        pydantic.ValidationError: If an input record or option is malformed.
    """
    settings = settings or Settings()
    opts = _resolve_options(options, settings)
    node_list = [_as_node(n) for n in nodes]
    edge_list = [_as_edge(e) for e in edges]

    run_id = uuid.uuid4().hex[:12]
    set_detection_context(namespace, run_id)
    logger.info(
        "Starting community detection: namespace=%s, %d nodes, %d edges",
        namespace, len(node_list), len(edge_list),
    )

    try:
        set_stage_context("build")
        graph = build_entity_graph(node_list, edge_list)

        set_stage_context("seed")
        seeded = seed_communities(node_list, namespace) if opts.seed_from_folders else []

        set_stage_context("cluster")
        clusterer = LouvainClusterer(
            resolution=opts.resolution,
            min_size=opts.min_size,
            max_level=opts.max_level,
            max_passes=opts.max_passes,
            seed=opts.seed,
            rng=rng,
        )
        detected = clusterer.cluster(graph)

        set_stage_context("merge")
        merged = merge_communities(seeded, detected, namespace, threshold=opts.merge_threshold)

        set_stage_context("classify")
        communities = classify_all(merged, node_list, edge_list)

        if index is not None:
            set_stage_context("index")
            index.add_communities(communities)

        summary = {
            "communities": len(communities),
            "seeded": sum(1 for c in communities if c.is_seeded),
            "detected": sum(1 for c in communities if c.attributes.get("detected")),
        }
        logger.info(
            "Community detection complete: %d communities (%d seeded, %d detected)",
            summary["communities"], summary["seeded"], summary["detected"],
            extra={"data": summary},
        )
        return communities
    finally:
        clear_context()


async def detect_communities_async(
    nodes: Iterable[NodeInput],
    edges: Iterable[EdgeInput],
    namespace: str = "default",
    options: DetectionOptions | Mapping[str, Any] | None = None,
    index: CommunityIndex | None = None,
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> list[Community]:
    """Run ``detect_communities`` in a worker thread."""
    return await asyncio.to_thread(
        detect_communities,
        list(nodes),
        list(edges),
        namespace,
        options,
        index,
        settings,
        rng,
    )


def _resolve_options(
    options: DetectionOptions | Mapping[str, Any] | None,
    settings: Settings,
) -> DetectionOptions:
    """Fill unset options from settings."""
    if options is None:
        opts = DetectionOptions()
    elif isinstance(options, DetectionOptions):
        opts = options
    else:
        opts = DetectionOptions.model_validate(options)

    defaults = {
        "min_size": settings.community_min_size,
        "max_level": settings.community_max_level,
        "resolution": settings.community_resolution,
        "seed_from_folders": settings.community_seed_from_folders,
        "seed": settings.community_seed,
        "max_passes": settings.community_max_passes,
        "merge_threshold": settings.community_merge_threshold,
    }
    explicit = opts.model_dump(exclude_none=True)
    return DetectionOptions(**{**defaults, **explicit})


def _as_node(node: NodeInput) -> GraphNode:
    return node if isinstance(node, GraphNode) else GraphNode.model_validate(node)


def _as_edge(edge: EdgeInput) -> GraphEdge:
    return edge if isinstance(edge, GraphEdge) else GraphEdge.model_validate(edge)
