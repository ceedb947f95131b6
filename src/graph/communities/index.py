# src/graph/communities/index.py — v1
"""In-memory community store with id, node and level indices.

One instance per namespace/session; no global state and no locking
(single writer). Queries never raise on unknown IDs, they return empty
results. Mutations report failure through their return value.

Invariants kept by every mutation:
  - stored communities are never empty
  - a node's community set and each community's ``entity_ids`` agree
  - ``child.level == parent.level + 1`` and both links exist once the
    parent is stored (a parent that has not arrived yet stays pending)
  - the parent links form a forest (re-parenting rejects cycles)
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from loreweave.core.models import GraphEdge
from loreweave.graph.communities.models import (
    BridgeCommunityRef,
    BridgeNodeInfo,
    Community,
    CommunityRelationship,
    CommunityStats,
    CommunityType,
    utc_now,
)

logger = logging.getLogger(__name__)

# Fields update_community never writes directly.
_PROTECTED_FIELDS = frozenset({"id", "child_community_ids", "created_at", "updated_at"})


class CommunityIndex:
    """Authoritative store for detected and hand-made communities."""

    def __init__(self, communities: Iterable[Community] | None = None) -> None:
        self._communities: dict[str, Community] = {}
        # dicts used as insertion-ordered sets
        self._by_node: dict[str, dict[str, None]] = {}
        self._by_level: dict[int, dict[str, None]] = {}
        if communities is not None:
            self.add_communities(communities)

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def add_community(self, community: Community) -> bool:
        """Store (or replace) a community and index it.

        Parent and child links are made two-sided on the way in: a known
        parent lists the community and sets its level, stored communities
        pointing at it become its children. A parent that is not stored yet
        stays a pending reference and is linked when it arrives, so exported
        records can be imported in any order. Empty communities and parents
        that would close a cycle are refused.
        """
        if not community.entity_ids:
            logger.warning("Refusing to store empty community %s", community.id)
            return False
        parent_id = community.parent_community_id
        if parent_id is not None and (
            parent_id == community.id
            or (parent_id in self._communities and not self._can_parent(community.id, parent_id))
        ):
            logger.warning("Invalid parent %s for community %s, refused", parent_id, community.id)
            return False

        existing = self._communities.get(community.id)
        if existing is not None:
            self._unindex(existing)
        self._communities[community.id] = community
        self._index(community)
        self._link(community)
        return True

    def add_communities(self, communities: Iterable[Community]) -> int:
        """Store several communities; returns how many were stored."""
        return sum(1 for c in communities if self.add_community(c))

    def create_community(
        self,
        name: str,
        entity_ids: list[str],
        namespace: str = "default",
        parent_community_id: str | None = None,
        **fields: Any,
    ) -> Community | None:
        """Create and store a community by hand. None if it would be empty
        or the requested parent does not exist."""
        if not entity_ids:
            return None
        if parent_community_id is not None and parent_community_id not in self._communities:
            return None

        community = Community(
            name=name,
            entity_ids=entity_ids,
            namespace=namespace,
            parent_community_id=parent_community_id,
            **fields,
        )
        if not self.add_community(community):
            return None
        return community

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_community(self, community_id: str) -> Community | None:
        return self._communities.get(community_id)

    def get_all_communities(self) -> list[Community]:
        return list(self._communities.values())

    def get_community_count(self) -> int:
        return len(self._communities)

    def get_communities_by_type(self, community_type: CommunityType | str) -> list[Community]:
        try:
            wanted = CommunityType(community_type)
        except ValueError:
            return []
        return [c for c in self._communities.values() if c.community_type == wanted]

    def get_communities_by_namespace(self, namespace: str) -> list[Community]:
        return [c for c in self._communities.values() if c.namespace == namespace]

    def get_communities_by_level(self, level: int) -> list[Community]:
        return self._resolve(self._by_level.get(level, {}))

    def get_child_communities(self, community_id: str) -> list[Community]:
        community = self._communities.get(community_id)
        if community is None:
            return []
        return self._resolve(community.child_community_ids)

    def get_node_communities(self, node_id: str) -> list[Community]:
        """All communities containing the node (multi-membership)."""
        return self._resolve(self._by_node.get(node_id, {}))

    def get_primary_community(self, node_id: str) -> Community | None:
        """Most specific community of a node: the numerically lowest level."""
        communities = self.get_node_communities(node_id)
        if not communities:
            return None
        return min(communities, key=lambda c: c.level)

    def get_community_hierarchy(self, community_id: str) -> list[Community]:
        """Ancestor chain from the root down to the community itself."""
        community = self._communities.get(community_id)
        if community is None:
            return []

        chain = [community]
        seen = {community.id}
        current = community
        while current.parent_community_id and current.parent_community_id not in seen:
            parent = self._communities.get(current.parent_community_id)
            if parent is None:
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent
        chain.reverse()
        return chain

    def find_overlap(self, community_id1: str, community_id2: str) -> list[str]:
        """Entities shared by two communities."""
        c1 = self._communities.get(community_id1)
        c2 = self._communities.get(community_id2)
        if c1 is None or c2 is None:
            return []
        members = set(c1.entity_ids)
        return [entity_id for entity_id in c2.entity_ids if entity_id in members]

    def get_bridge_nodes(self) -> dict[str, list[str]]:
        """Nodes in more than one community, mapped to those community IDs."""
        return {
            node_id: list(community_ids)
            for node_id, community_ids in self._by_node.items()
            if len(community_ids) > 1
        }

    def get_bridge_nodes_detailed(self) -> list[BridgeNodeInfo]:
        """Bridge nodes with community metadata, most connected first."""
        bridges: list[BridgeNodeInfo] = []
        for node_id, community_ids in self.get_bridge_nodes().items():
            communities = self._resolve(community_ids)
            bridges.append(BridgeNodeInfo(
                node_id=node_id,
                community_count=len(communities),
                communities=[
                    BridgeCommunityRef(id=c.id, name=c.name, community_type=c.community_type)
                    for c in communities
                ],
            ))
        bridges.sort(key=lambda b: b.community_count, reverse=True)
        return bridges

    def get_community_relationships(self, edges: Iterable[GraphEdge]) -> list[CommunityRelationship]:
        """Aggregate edges whose endpoints sit in two distinct communities.

        Pairs are symmetric: A-B and B-A share one record. Sorted by
        descending edge count.
        """
        relationships: dict[tuple[str, str], CommunityRelationship] = {}

        for edge in edges:
            source_comms = self._by_node.get(edge.source_id)
            target_comms = self._by_node.get(edge.target_id)
            if not source_comms or not target_comms:
                continue

            # An edge counts once per community pair
            pairs: dict[tuple[str, str], tuple[str, str]] = {}
            for source_comm in source_comms:
                for target_comm in target_comms:
                    if source_comm != target_comm:
                        key = (min(source_comm, target_comm), max(source_comm, target_comm))
                        pairs.setdefault(key, (source_comm, target_comm))

            for key, (source_comm, target_comm) in pairs.items():
                rel = relationships.get(key)
                if rel is None:
                    rel = CommunityRelationship(
                        community1_id=source_comm,
                        community2_id=target_comm,
                    )
                    relationships[key] = rel
                rel.edge_count += 1
                rel.total_weight += edge.weight or 1.0
                rel.edge_types.add(edge.relation_type)

        return sorted(relationships.values(), key=lambda r: r.edge_count, reverse=True)

    def get_stats(self) -> CommunityStats:
        communities = list(self._communities.values())
        total_members = sum(c.size for c in communities)
        return CommunityStats(
            total=len(communities),
            by_type=dict(Counter(c.community_type.value for c in communities)),
            by_level=dict(Counter(c.level for c in communities)),
            total_members=total_members,
            average_size=total_members / len(communities) if communities else 0.0,
            bridge_node_count=sum(1 for ids in self._by_node.values() if len(ids) > 1),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_entity_to_community(self, entity_id: str, community_id: str) -> bool:
        community = self._communities.get(community_id)
        if community is None:
            return False
        if entity_id not in community.entity_ids:
            community.entity_ids.append(entity_id)
            community.touch()
        self._by_node.setdefault(entity_id, {})[community_id] = None
        return True

    def remove_entity_from_community(self, entity_id: str, community_id: str) -> bool:
        """Remove a member. A community left without members is deleted."""
        community = self._communities.get(community_id)
        if community is None:
            return False
        if entity_id in community.entity_ids:
            community.entity_ids.remove(entity_id)
            community.touch()
        self._discard_node(entity_id, community_id)

        if not community.entity_ids:
            logger.info("Community %s lost its last member, deleting it", community_id)
            self.delete_community(community_id)
        return True

    def update_community(self, community_id: str, updates: Mapping[str, Any]) -> Community | None:
        """Partial update. ``id`` is immutable; hierarchy changes go through set_parent.

        Returns the updated community, or None when the community is unknown,
        a value does not validate, or the update would break an invariant
        (empty members, bad parent).
        """
        community = self._communities.get(community_id)
        if community is None:
            return None

        changes = {k: v for k, v in updates.items() if k not in _PROTECTED_FIELDS}
        if "entity_ids" in changes and not changes["entity_ids"]:
            logger.warning("Update would empty community %s, rejected", community_id)
            return None

        parent_change = "parent_community_id" in changes
        new_parent = changes.pop("parent_community_id", None)
        if parent_change and new_parent == community.parent_community_id:
            parent_change = False
        if parent_change and not self._can_parent(community_id, new_parent):
            logger.warning("Invalid parent %s for community %s, rejected", new_parent, community_id)
            return None
        if "level" in changes and (community.parent_community_id or (parent_change and new_parent)):
            # Level of a nested community follows its parent
            changes.pop("level")

        try:
            updated = Community.model_validate({
                **community.model_dump(),
                **changes,
                "id": community.id,
                "updated_at": utc_now(),
            })
        except ValidationError as exc:
            logger.warning(
                "Invalid update for community %s, rejected: %d error(s)",
                community_id, exc.error_count(),
            )
            return None
        self._unindex(community)
        self._communities[community_id] = updated
        self._index(updated)

        if parent_change:
            self.set_parent(community_id, new_parent)
        elif updated.level != community.level:
            self._relevel_children(updated)
        return self._communities[community_id]

    def set_parent(self, community_id: str, parent_id: str | None) -> bool:
        """Re-parent a community. Rejects cycles.

        None makes it a root that keeps its current level, like the
        upper-level roots Louvain produces.
        """
        community = self._communities.get(community_id)
        if community is None or not self._can_parent(community_id, parent_id):
            return False

        old_parent = self._communities.get(community.parent_community_id or "")
        if old_parent is not None and community_id in old_parent.child_community_ids:
            old_parent.child_community_ids.remove(community_id)

        if parent_id is None:
            community.parent_community_id = None
        else:
            parent = self._communities[parent_id]
            community.parent_community_id = parent_id
            if community_id not in parent.child_community_ids:
                parent.child_community_ids.append(community_id)
            self._set_level(community, parent.level + 1)

        self._relevel_children(community)
        community.touch()
        return True

    def delete_community(self, community_id: str) -> bool:
        """Remove a community; its children become roots at their current level."""
        community = self._communities.get(community_id)
        if community is None:
            return False

        if community.parent_community_id:
            parent = self._communities.get(community.parent_community_id)
            if parent is not None and community_id in parent.child_community_ids:
                parent.child_community_ids.remove(community_id)

        self._unindex(community)
        del self._communities[community_id]

        for child in self._resolve(community.child_community_ids):
            child.parent_community_id = None
        return True

    def clear(self) -> None:
        self._communities.clear()
        self._by_node.clear()
        self._by_level.clear()

    # ------------------------------------------------------------------
    # Persistence hand-off
    # ------------------------------------------------------------------

    def export(self) -> list[dict[str, Any]]:
        """JSON-safe records of every community."""
        return [c.model_dump(mode="json") for c in self._communities.values()]

    def import_communities(self, data: Iterable[Community | Mapping[str, Any]]) -> int:
        """Load exported records and rebuild the indices.

        Raises:
            pydantic.ValidationError: If a record is structurally invalid.
        """
        imported = 0
        for item in data:
            if isinstance(item, Community):
                community = item.model_copy(deep=True)
            else:
                community = Community.model_validate(item)
            if self.add_community(community):
                imported += 1
        logger.info("Imported %d communities", imported)
        return imported

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, community_ids: Iterable[str]) -> list[Community]:
        return [self._communities[cid] for cid in community_ids if cid in self._communities]

    def _index(self, community: Community) -> None:
        for entity_id in community.entity_ids:
            self._by_node.setdefault(entity_id, {})[community.id] = None
        self._by_level.setdefault(community.level, {})[community.id] = None

    def _unindex(self, community: Community) -> None:
        for entity_id in community.entity_ids:
            self._discard_node(entity_id, community.id)
        level_ids = self._by_level.get(community.level)
        if level_ids is not None:
            level_ids.pop(community.id, None)
            if not level_ids:
                del self._by_level[community.level]

    def _discard_node(self, entity_id: str, community_id: str) -> None:
        community_ids = self._by_node.get(entity_id)
        if community_ids is None:
            return
        community_ids.pop(community_id, None)
        if not community_ids:
            del self._by_node[entity_id]

    def _set_level(self, community: Community, level: int) -> None:
        if community.level == level:
            return
        level_ids = self._by_level.get(community.level)
        if level_ids is not None:
            level_ids.pop(community.id, None)
            if not level_ids:
                del self._by_level[community.level]
        community.level = level
        self._by_level.setdefault(level, {})[community.id] = None

    def _relevel_children(self, community: Community) -> None:
        stack = [community]
        seen = {community.id}
        while stack:
            current = stack.pop()
            for child in self._resolve(current.child_community_ids):
                if child.id in seen:
                    continue
                seen.add(child.id)
                self._set_level(child, current.level + 1)
                stack.append(child)

    def _link(self, community: Community) -> None:
        """Make the links of a freshly stored community agree on both sides."""
        parent = self._communities.get(community.parent_community_id or "")
        if parent is not None:
            if community.id not in parent.child_community_ids:
                parent.child_community_ids.append(community.id)
            self._set_level(community, parent.level + 1)

        adopted: list[str] = []
        for other in self._communities.values():
            if other is community:
                continue
            if other.parent_community_id == community.id:
                adopted.append(other.id)
            elif community.id in other.child_community_ids and other.id != community.parent_community_id:
                # stale link left by a replaced community
                other.child_community_ids.remove(community.id)

        # unknown ids stay listed until those children arrive
        children = [
            cid for cid in community.child_community_ids
            if cid in adopted or cid not in self._communities
        ]
        children.extend(cid for cid in adopted if cid not in children)
        community.child_community_ids[:] = list(dict.fromkeys(children))
        self._relevel_children(community)

    def _can_parent(self, community_id: str, parent_id: str | None) -> bool:
        """A parent must exist and must not sit below the community.

        The walk up follows pending references too, so a parent still
        waiting for ``community_id`` to arrive is rejected as well.
        """
        if parent_id is None:
            return True
        if parent_id == community_id or parent_id not in self._communities:
            return False
        current = self._communities.get(parent_id)
        seen: set[str] = set()
        while current is not None and current.id not in seen:
            if current.parent_community_id == community_id:
                return False
            seen.add(current.id)
            current = self._communities.get(current.parent_community_id or "")
        return True
