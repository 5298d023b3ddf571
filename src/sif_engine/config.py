from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils import read_json, stable_hash

WEIGHT_TOLERANCE = 1e-9


class ILWeights(BaseModel):
    natural_instinct: float = 0.30
    situational_fit: float = 0.25
    social_expectation: float = 0.25
    internal_consistency: float = 0.20

    @model_validator(mode="after")
    def _check_normalized(self) -> "ILWeights":
        total = (
            self.natural_instinct
            + self.situational_fit
            + self.social_expectation
            + self.internal_consistency
        )
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"IL weights must sum to 1.0, got {total}")
        if min(
            self.natural_instinct,
            self.situational_fit,
            self.social_expectation,
            self.internal_consistency,
        ) < 0:
            raise ValueError("IL weights must be non-negative")
        return self


class BandPolicy(BaseModel):
    sif_medium: float = 0.30
    sif_high: float = 0.50
    il_low: float = 1.60
    il_high: float = 2.40

    @model_validator(mode="after")
    def _check_ordering(self) -> "BandPolicy":
        if not self.sif_medium < self.sif_high:
            raise ValueError("sif_medium must be below sif_high")
        if not self.il_low < self.il_high:
            raise ValueError("il_low must be below il_high")
        return self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SIF_", env_nested_delimiter="__")

    shortlist_size: int = Field(default=4, ge=1)
    max_faces_per_family: int = Field(default=1, ge=1)
    max_primary_lines: int = Field(default=3, ge=0)
    deep_f_monitor_days: int = 30
    il_base_cap: float = 4.0
    il_cap: float = 5.0
    sibling_bonus: float = 1.0
    prize_bonus: float = 0.5
    il_weights: ILWeights = Field(default_factory=ILWeights)
    bands: BandPolicy = Field(default_factory=BandPolicy)

    def fingerprint(self) -> str:
        return stable_hash(self.model_dump())


def load_settings(config: Optional[Path]) -> Settings:
    if config is None:
        return Settings()
    data = read_json(config)
    return Settings(**data)
