# src/graph/communities/models.py — v1
"""Community models: stored communities, detection output and query records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def new_community_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class CommunityType(str, Enum):
    FACTION = "FACTION"
    FAMILY = "FAMILY"
    LOCATION_GROUP = "LOCATION_GROUP"
    PROFESSION = "PROFESSION"
    CUSTOM = "CUSTOM"


class Community(BaseModel):
    """A (possibly nested, possibly overlapping) group of entities."""

    # --- Identity ---
    id: str = Field(default_factory=new_community_id)
    name: str = ""
    description: str = ""

    # --- Backing container (seeded communities only) ---
    backing_node_id: str | None = None
    entity_kind_of_backing: str | None = None

    # --- Hierarchy ---
    parent_community_id: str | None = None
    child_community_ids: list[str] = Field(default_factory=list)
    level: int = Field(default=0, ge=0)

    # --- Members ---
    entity_ids: list[str] = Field(default_factory=list)
    leader_id: str | None = None

    community_type: CommunityType = CommunityType.CUSTOM
    namespace: str = "default"
    attributes: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("entity_ids", "child_community_ids")
    @classmethod
    def drop_duplicates(cls, v: list[str]) -> list[str]:
        return _dedupe(v)

    @property
    def size(self) -> int:
        return len(self.entity_ids)

    @property
    def is_seeded(self) -> bool:
        return bool(self.attributes.get("seeded"))

    def touch(self) -> None:
        self.updated_at = utc_now()


class DetectedCommunity(BaseModel):
    """Raw cluster produced by one level of Louvain clustering."""

    id: str = Field(default_factory=new_community_id)
    level: int = 0
    entity_ids: list[str] = Field(default_factory=list)
    modularity: float = 0.0


class BridgeCommunityRef(BaseModel):
    id: str
    name: str
    community_type: CommunityType


class BridgeNodeInfo(BaseModel):
    """Entity that belongs to more than one community."""

    node_id: str
    community_count: int
    communities: list[BridgeCommunityRef] = Field(default_factory=list)


class CommunityRelationship(BaseModel):
    """Aggregated edges running between two distinct communities."""

    community1_id: str
    community2_id: str
    edge_count: int = 0
    total_weight: float = 0.0
    edge_types: set[str] = Field(default_factory=set)


class CommunityStats(BaseModel):
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_level: dict[int, int] = Field(default_factory=dict)
    total_members: int = 0
    average_size: float = 0.0
    bridge_node_count: int = 0
