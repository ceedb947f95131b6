# src/graph/builder.py — v1
"""Entity graph builder: weighted undirected NetworkX graph for clustering.

Only genuine entity nodes take part; organizational containers (folders)
are left out. Edge weights are boosted by relation type and scaled by
confidence, and parallel edges between the same pair accumulate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import networkx as nx

from loreweave.core.models import GraphEdge, GraphNode
from loreweave.graph.taxonomy import edge_type_boost

logger = logging.getLogger(__name__)

Adjacency = dict[str, dict[str, float]]


def build_entity_graph(
    nodes: Iterable[GraphNode],
    edges: Iterable[GraphEdge],
) -> nx.Graph:
    """Build the weighted entity graph.

    Args:
        nodes: All graph nodes; containers are skipped.
        edges: Typed relationships. Edges touching a missing or non-entity
            node are dropped.

    Returns:
        NetworkX Graph whose ``weight`` edge attribute holds the aggregated
        weight. Empty input gives an empty graph.
    """
    graph = nx.Graph()

    for node in nodes:
        if node.is_entity_node:
            graph.add_node(node.id, entity_kind=node.entity_kind)

    kept = 0
    dropped = 0
    for edge in edges:
        if not graph.has_node(edge.source_id) or not graph.has_node(edge.target_id):
            logger.debug(
                "Skipping edge with missing or non-entity node: %s -> %s",
                edge.source_id, edge.target_id,
            )
            dropped += 1
            continue

        weight = edge_weight(edge)
        if edge.source_id == edge.target_id:
            # Both directions land on the same slot.
            weight *= 2

        if graph.has_edge(edge.source_id, edge.target_id):
            graph[edge.source_id][edge.target_id]["weight"] += weight
        else:
            graph.add_edge(edge.source_id, edge.target_id, weight=weight)
        kept += 1

    logger.info(
        "Built entity graph: %d nodes, %d edges (%d relationships kept, %d dropped)",
        graph.number_of_nodes(),
        graph.number_of_edges(),
        kept,
        dropped,
    )
    return graph


def edge_weight(edge: GraphEdge) -> float:
    """base weight x relation-type boost x confidence.

    A missing or zero base weight counts as 1.0 and a missing or zero confidence
    leaves the weight unscaled.
    """
    weight = edge.weight or 1.0
    weight *= edge_type_boost(edge.relation_type)
    if edge.confidence:
        weight *= edge.confidence
    return weight


def graph_to_adjacency(graph: nx.Graph) -> Adjacency:
    """Plain neighbor -> weight maps, both directions filled in."""
    return {
        node: {nbr: float(data.get("weight", 1.0)) for nbr, data in graph.adj[node].items()}
        for node in graph.nodes
    }
