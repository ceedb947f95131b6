# src/api/models.py — v1
"""API-level models: per-run detection options."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DetectionOptions(BaseModel):
    """Per-run overrides. Unset fields fall back to Settings.

    camelCase keys (``minSize``, ``maxLevel``, ``seedFromFolders``) are
    accepted alongside the snake_case names.
    """

    model_config = ConfigDict(populate_by_name=True)

    min_size: int | None = Field(default=None, ge=1, alias="minSize")
    max_level: int | None = Field(default=None, ge=0, alias="maxLevel")
    resolution: float | None = Field(default=None, gt=0)
    seed_from_folders: bool | None = Field(default=None, alias="seedFromFolders")
    seed: int | None = None
    max_passes: int | None = Field(default=None, ge=1, alias="maxPasses")
    merge_threshold: float | None = Field(default=None, gt=0, le=1, alias="mergeThreshold")
