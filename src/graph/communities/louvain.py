# src/graph/communities/louvain.py — v1
"""Multi-level Louvain clustering over the weighted entity graph.

Each level runs local optimization (nodes greedily move to the neighbor
community with the best modularity gain), then coarsens the graph by
collapsing communities into super-nodes. Clusters of every level are
traced back to original node IDs and returned together, so the output
may hold nested clusters from several levels.

Visitation order is shuffled each pass; pass ``seed`` or ``rng`` to make
the result reproducible.
"""

from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict

import networkx as nx

from loreweave.graph.builder import Adjacency, graph_to_adjacency
from loreweave.graph.communities.models import DetectedCommunity

logger = logging.getLogger(__name__)

# Minimum gain for a node move to count as an improvement.
GAIN_EPSILON = 1e-10

Partition = dict[str, int]


def modularity_gain(
    sum_in: float,
    sum_tot: float,
    weight_to_target: float,
    node_degree: float,
    m2: float,
    resolution: float,
) -> float:
    """Gain of moving a node into a target community.

    ``sum_in``/``sum_tot`` describe the target community without the node.
    The node's own ``(degree/m2)^2`` term is subtracted in the "before"
    half, which is not the textbook derivation but is kept as is.
    """
    after = (sum_in + 2 * weight_to_target) / m2 - ((sum_tot + node_degree) / m2) ** 2 * resolution
    before = (
        sum_in / m2
        - (sum_tot / m2) ** 2 * resolution
        - (node_degree / m2) ** 2 * resolution
    )
    return after - before


def renumber_partition(partition: Partition) -> Partition:
    """Contiguous community numbers, in first-seen order."""
    numbering: dict[int, int] = {}
    result: Partition = {}
    for node, community in partition.items():
        if community not in numbering:
            numbering[community] = len(numbering)
        result[node] = numbering[community]
    return result


def is_fragmented(partition: Partition) -> bool:
    """Nothing grouped: every community has fewer than 2 members."""
    return all(size < 2 for size in Counter(partition.values()).values())


def is_collapsed(partition: Partition) -> bool:
    """The whole graph sits in a single community."""
    return len(set(partition.values())) == 1


def coarsen(adjacency: Adjacency, partition: Partition) -> tuple[Adjacency, dict[str, str]]:
    """Collapse each community into a super-node.

    Intra-community weight becomes a self-loop, inter-community weight is
    summed onto the edge between the two super-nodes. Both directions of
    every adjacency entry are summed.

    Returns:
        (coarse adjacency, current node -> super-node mapping)
    """
    mapping = {node: f"comm_{partition[node]}" for node in adjacency}
    self_loops: dict[int, float] = defaultdict(float)
    between: dict[tuple[int, int], float] = defaultdict(float)

    for node, neighbors in adjacency.items():
        source = partition[node]
        for neighbor, weight in neighbors.items():
            target = partition[neighbor]
            if source == target:
                self_loops[source] += weight
            else:
                between[(min(source, target), max(source, target))] += weight

    coarse: Adjacency = {}
    for community in dict.fromkeys(partition.values()):
        super_node = f"comm_{community}"
        coarse[super_node] = {}
        if self_loops.get(community):
            coarse[super_node][super_node] = self_loops[community]

    for (a, b), weight in between.items():
        coarse[f"comm_{a}"][f"comm_{b}"] = weight
        coarse[f"comm_{b}"][f"comm_{a}"] = weight

    return coarse, mapping


class LouvainClusterer:
    """Seedable multi-level Louvain clustering.

    Args:
        resolution: Null-model multiplier; higher favors more, smaller communities.
        min_size: Clusters smaller than this are discarded.
        max_level: Maximum number of optimize/coarsen levels.
        max_passes: Maximum local-move passes per level.
        seed: Seed for the shuffle RNG (ignored when ``rng`` is given).
        rng: Random source used to shuffle the visitation order.
    """

    def __init__(
        self,
        resolution: float = 1.0,
        min_size: int = 3,
        max_level: int = 5,
        max_passes: int = 100,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.resolution = resolution
        self.min_size = min_size
        self.max_level = max_level
        self.max_passes = max_passes
        self.rng = rng if rng is not None else random.Random(seed)

    def cluster(self, graph: nx.Graph) -> list[DetectedCommunity]:
        """Run all levels and return the surviving clusters of every level."""
        if graph.number_of_nodes() == 0:
            return []

        current = graph_to_adjacency(graph)
        node_mapping: dict[str, str] = {node: node for node in current}
        detected: list[DetectedCommunity] = []

        for level in range(self.max_level):
            partition = self.optimize_level(current)

            if is_fragmented(partition):
                logger.debug("No grouping at level %d, stopping", level)
                break

            detected.extend(self._extract(graph, partition, node_mapping, level))

            if is_collapsed(partition):
                logger.debug("Graph collapsed into one community at level %d", level)
                break

            current, mapping = coarsen(current, partition)
            node_mapping = {
                orig: mapping[node] for orig, node in node_mapping.items() if node in mapping
            }

        logger.info(
            "Louvain clustering: %d communities kept across %d level(s) (min size %d)",
            len(detected),
            len({c.level for c in detected}),
            self.min_size,
        )
        return detected

    def optimize_level(self, adjacency: Adjacency) -> Partition:
        """Phase 1: greedy local moves until a pass moves nothing."""
        nodes = list(adjacency)
        partition: Partition = {node: i for i, node in enumerate(nodes)}
        degrees = {node: sum(adjacency[node].values()) for node in nodes}
        m2 = sum(degrees.values())
        if m2 <= 0:
            return renumber_partition(partition)

        # Per-community totals, kept up to date as nodes move
        sum_tot = {partition[n]: degrees[n] for n in nodes}
        sum_in = {partition[n]: adjacency[n].get(n, 0.0) for n in nodes}

        for pass_no in range(1, self.max_passes + 1):
            moves = 0
            order = nodes[:]
            self.rng.shuffle(order)

            for node in order:
                current = partition[node]
                degree = degrees[node]

                links: dict[int, float] = defaultdict(float)
                for neighbor, weight in adjacency[node].items():
                    links[partition[neighbor]] += weight

                best, best_gain = current, 0.0
                for community, weight_to in links.items():
                    if community == current:
                        continue
                    gain = modularity_gain(
                        sum_in[community], sum_tot[community],
                        weight_to, degree, m2, self.resolution,
                    )
                    if gain > best_gain:
                        best, best_gain = community, gain

                if best == current or best_gain <= GAIN_EPSILON:
                    continue

                self_loop = adjacency[node].get(node, 0.0)
                sum_tot[current] -= degree
                sum_in[current] -= 2 * (links[current] - self_loop) + self_loop
                sum_tot[best] += degree
                sum_in[best] += 2 * links[best] + self_loop
                partition[node] = best
                moves += 1

            if moves == 0:
                logger.debug("Local optimization settled after %d pass(es)", pass_no)
                break

        return renumber_partition(partition)

    def _extract(
        self,
        graph: nx.Graph,
        partition: Partition,
        node_mapping: dict[str, str],
        level: int,
    ) -> list[DetectedCommunity]:
        """Trace a level's partition back to original nodes and filter by size.

        Above level 0 a community made of a single super-node repeats a
        group already emitted at the previous level and is skipped.
        """
        originals: dict[str, list[str]] = defaultdict(list)
        for orig, node in node_mapping.items():
            originals[node].append(orig)

        members: dict[int, list[str]] = defaultdict(list)
        parts: Counter[int] = Counter()
        for node, community in partition.items():
            members[community].extend(originals.get(node, [node]))
            parts[community] += 1

        modularity = self._modularity(graph, members.values())
        kept = [
            DetectedCommunity(level=level, entity_ids=ids, modularity=modularity)
            for community, ids in members.items()
            if len(ids) >= self.min_size and (level == 0 or parts[community] > 1)
        ]
        logger.debug(
            "Level %d: %d communities, %d kept, modularity %.4f",
            level, len(members), len(kept), modularity,
        )
        return kept

    def _modularity(self, graph: nx.Graph, groups) -> float:
        if graph.size(weight="weight") == 0:
            return 0.0
        return nx.community.modularity(
            graph,
            [set(ids) for ids in groups],
            weight="weight",
            resolution=self.resolution,
        )
