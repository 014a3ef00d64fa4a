"""Analysis configuration via environment / .env file."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NEXUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Community detection ---
    LPA_MAX_ITERATIONS: int = 10
    # Seeds label propagation when set; unseeded runs vary between calls
    RANDOM_SEED: Optional[int] = None

    # --- Centrality ---
    PAGERANK_DAMPING: float = 0.85
    PAGERANK_ITERATIONS: int = 20
    KEY_NODE_FLOOR: float = 0.5
    KEY_NODE_PERCENTILE: float = 0.2

    # --- Suggestions ---
    MAX_SUGGESTIONS: int = 5
    SUGGESTION_SCORE_CEILING: float = 0.8

    @field_validator("PAGERANK_DAMPING", "KEY_NODE_PERCENTILE")
    @classmethod
    def _unit_interval(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("must be in [0, 1)")
        return v

    @field_validator("LPA_MAX_ITERATIONS", "PAGERANK_ITERATIONS", "MAX_SUGGESTIONS")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be non-negative")
        return v


settings = AnalysisSettings()
