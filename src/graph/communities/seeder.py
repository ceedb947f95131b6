# src/graph/communities/seeder.py — v1
"""Seed communities from explicit faction containers.

Each top-level container of a seedable kind becomes a level-0 FACTION
community holding every entity found beneath it, nested containers
included. A second pass links seeds whose containers are nested inside
another seed's container, giving faction-of-faction hierarchies.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Iterable

from loreweave.core.models import GraphNode
from loreweave.graph.communities.models import Community, CommunityType, utc_now
from loreweave.graph.taxonomy import SEED_CONTAINER_KINDS, is_leader_subtype

logger = logging.getLogger(__name__)


class ContainmentTree:
    """Node-id indexed view of the containment hierarchy, built once."""

    def __init__(self, nodes: Iterable[GraphNode]) -> None:
        self.by_id: dict[str, GraphNode] = {}
        self.children: dict[str, list[GraphNode]] = defaultdict(list)
        for node in nodes:
            self.by_id[node.id] = node
            if node.parent_container_id:
                self.children[node.parent_container_id].append(node)

    def descendant_entities(self, container_id: str) -> list[str]:
        """BFS below a container: collect entity leaves, descend into containers."""
        found: list[str] = []
        queue = deque([container_id])
        visited: set[str] = set()

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)

            for child in self.children.get(current, ()):
                if not child.is_entity_node:
                    queue.append(child.id)
                elif child.id not in found:
                    found.append(child.id)
        return found

    def ancestors(self, node_id: str) -> Iterable[str]:
        """Yield parent, grandparent... of a node. Stops on cycles."""
        seen = {node_id}
        node = self.by_id.get(node_id)
        parent_id = node.parent_container_id if node else None
        while parent_id and parent_id not in seen:
            yield parent_id
            seen.add(parent_id)
            parent = self.by_id.get(parent_id)
            parent_id = parent.parent_container_id if parent else None


def seed_communities(
    nodes: Iterable[GraphNode],
    namespace: str = "default",
) -> list[Community]:
    """Build seed communities from faction containers.

    Args:
        nodes: All graph nodes, containers included.
        namespace: Namespace stamped on every seed.

    Returns:
        Seed communities in container order, hierarchy links filled in.
    """
    tree = ContainmentTree(nodes)
    seeds: list[Community] = []

    for node in tree.by_id.values():
        if node.is_entity_node or node.kind not in SEED_CONTAINER_KINDS:
            continue

        members = tree.descendant_entities(node.id)
        if not members:
            logger.debug("Container %s has no entity descendants, not seeded", node.id)
            continue

        label = node.label or node.id
        now = utc_now()
        seeds.append(Community(
            name=label,
            description=node.content or f"{label} faction",
            backing_node_id=node.id,
            entity_kind_of_backing=node.kind,
            level=0,
            entity_ids=members,
            leader_id=find_leader(members, tree.by_id),
            community_type=CommunityType.FACTION,
            namespace=namespace,
            attributes={"seeded": True, "source": "FOLDER"},
            created_at=node.created_at or now,
            updated_at=node.updated_at or now,
        ))

    build_faction_hierarchy(seeds, tree)

    logger.info(
        "Seeded %d communities from containers (%d nested)",
        len(seeds),
        sum(1 for s in seeds if s.parent_community_id),
    )
    return seeds


def find_leader(members: list[str], by_id: dict[str, GraphNode]) -> str | None:
    """First member whose subtype carries a leadership keyword, else the first member."""
    for member_id in members:
        node = by_id.get(member_id)
        if node is not None and is_leader_subtype(node.entity_subtype):
            return member_id
    return members[0] if members else None


def build_faction_hierarchy(seeds: list[Community], tree: ContainmentTree) -> None:
    """Link each seed to the nearest ancestor container that backs another seed."""
    by_backing = {s.backing_node_id: s for s in seeds if s.backing_node_id}
    by_id = {s.id: s for s in seeds}

    for seed in seeds:
        if not seed.backing_node_id:
            continue
        for ancestor_id in tree.ancestors(seed.backing_node_id):
            parent = by_backing.get(ancestor_id)
            if parent is None or parent is seed:
                continue
            # Cyclic containment data must not turn into a cyclic hierarchy
            if not _is_descendant(parent, seed, by_id):
                seed.parent_community_id = parent.id
                parent.child_community_ids.append(seed.id)
            break

    # Levels are assigned top-down so deep chains stay consistent
    queue = deque(s for s in seeds if s.parent_community_id is None)
    while queue:
        current = queue.popleft()
        for child_id in current.child_community_ids:
            child = by_id[child_id]
            child.level = current.level + 1
            queue.append(child)


def _is_descendant(candidate: Community, root: Community, by_id: dict[str, Community]) -> bool:
    current: Community | None = candidate
    seen: set[str] = set()
    while current is not None and current.id not in seen:
        if current.id == root.id:
            return True
        seen.add(current.id)
        current = by_id.get(current.parent_community_id) if current.parent_community_id else None
    return False
