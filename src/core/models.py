# src/core/models.py — v1
"""Shared Pydantic input models: graph nodes and edges.

These are the records handed over by the extraction/storage collaborator.
Field aliases accept the camelCase keys that collaborator emits
(``isEntityNode``, ``sourceId``...) as well as the snake_case names.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GraphNode(BaseModel):
    """Entity or container node of the narrative graph."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    is_entity_node: bool = Field(default=True, alias="isEntityNode")
    entity_kind: str = Field(default="", alias="entityKind")
    entity_subtype: str | None = Field(default=None, alias="entitySubtype")
    parent_container_id: str | None = Field(default=None, alias="parentContainerId")

    # --- Display ---
    label: str = ""
    content: str = ""

    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @property
    def kind(self) -> str:
        """Upper-cased entity kind, for case-insensitive comparisons."""
        return self.entity_kind.upper()


class GraphEdge(BaseModel):
    """Typed, weighted relationship between two nodes. Treated as undirected."""

    model_config = ConfigDict(populate_by_name=True)

    source_id: str = Field(alias="sourceId")
    target_id: str = Field(alias="targetId")
    relation_type: str = Field(alias="relationType")
    weight: float | None = 1.0
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
