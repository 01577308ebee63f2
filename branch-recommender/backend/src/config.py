from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from utils import mask_secret


DEFAULT_BRANCHES_PATH = Path(__file__).resolve().parent.parent / "data" / "branches.json"
SUPPORTED_AI_PROVIDERS = ("gemini", "mistral")
PRIORITY_BONUS_SLOTS = 4


class Configuration(BaseModel):
    # Location store
    branches_path: Path = Field(default=DEFAULT_BRANCHES_PATH)

    # AI provider
    ai_provider: str = Field(default="mistral")
    ai_timeout_sec: float = Field(default=60.0, gt=0)
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: str = Field(default="gemini-2.0-flash")
    mistral_api_key: Optional[str] = Field(default=None)
    mistral_base_url: str = Field(default="https://api.mistral.ai/v1")
    mistral_model: str = Field(default="mistral-large-latest")
    mistral_temperature: float = Field(default=0.7)
    mistral_max_tokens: int = Field(default=1000)

    # Scoring (weights must sum to 100)
    distance_weight: float = Field(default=30.0, ge=0)
    criteria_weight: float = Field(default=40.0, ge=0)
    priority_weight: float = Field(default=30.0, ge=0)
    max_distance_km: float = Field(default=50.0, gt=0)
    very_far_km: float = Field(default=30.0, gt=0)
    priority_bonuses: List[float] = Field(default_factory=lambda: [20.0, 15.0, 10.0, 7.0])
    score_tolerance: float = Field(default=0.5, ge=0)
    top_k: int = Field(default=5, ge=1)

    # Fallback
    fallback_branch_name: str = Field(default="Central Branch")

    @field_validator("priority_bonuses", mode="before")
    @classmethod
    def _split_bonuses(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [float(part) for part in value.split(",") if part.strip()]
        return value

    @field_validator("priority_bonuses")
    @classmethod
    def _four_non_negative_bonuses(cls, value: List[float]) -> List[float]:
        if len(value) != PRIORITY_BONUS_SLOTS:
            raise ValueError(
                f"priority bonuses must have exactly {PRIORITY_BONUS_SLOTS} entries (got {len(value)})"
            )
        if any(b < 0 for b in value):
            raise ValueError("priority bonuses must be non-negative")
        return value

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _lower_provider(cls, value: Any) -> Any:
        return str(value).strip().lower() if value is not None else value

    @model_validator(mode="after")
    def _weights_sum_to_100(self) -> "Configuration":
        total = self.distance_weight + self.criteria_weight + self.priority_weight
        if abs(total - 100.0) > 1e-6:
            raise ValueError(f"scoring weights must sum to 100 (got {total:g})")
        return self

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "branches_path": os.getenv("BRANCHES_PATH"),
            # AI
            "ai_provider": os.getenv("AI_PROVIDER"),
            "ai_timeout_sec": os.getenv("AI_TIMEOUT_SEC"),
            "gemini_api_key": os.getenv("GEMINI_API_KEY"),
            "gemini_model": os.getenv("GEMINI_MODEL"),
            "mistral_api_key": os.getenv("MISTRAL_API_KEY"),
            "mistral_base_url": os.getenv("MISTRAL_BASE_URL"),
            "mistral_model": os.getenv("MISTRAL_MODEL"),
            "mistral_temperature": os.getenv("MISTRAL_TEMPERATURE"),
            "mistral_max_tokens": os.getenv("MISTRAL_MAX_TOKENS"),
            # Scoring
            "distance_weight": os.getenv("SCORE_DISTANCE_WEIGHT"),
            "criteria_weight": os.getenv("SCORE_CRITERIA_WEIGHT"),
            "priority_weight": os.getenv("SCORE_PRIORITY_WEIGHT"),
            "max_distance_km": os.getenv("MAX_DISTANCE_KM"),
            "very_far_km": os.getenv("VERY_FAR_KM"),
            "priority_bonuses": os.getenv("PRIORITY_BONUSES"),
            "score_tolerance": os.getenv("SCORE_TOLERANCE"),
            "top_k": os.getenv("TOP_K"),
            "fallback_branch_name": os.getenv("FALLBACK_BRANCH_NAME"),
        }

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def active_api_key(self) -> Optional[str]:
        if self.ai_provider == "gemini":
            return self.gemini_api_key
        if self.ai_provider == "mistral":
            return self.mistral_api_key
        return None

    def require_ai(self) -> None:
        if self.ai_provider not in SUPPORTED_AI_PROVIDERS:
            raise ValueError(
                f"Invalid AI provider: {self.ai_provider}. Choose one of {', '.join(SUPPORTED_AI_PROVIDERS)}."
            )
        if not self.active_api_key():
            raise ValueError(f"{self.ai_provider.upper()}_API_KEY is required")

    def log_summary(self) -> str:
        return (
            "branches=%s ai_provider=%s ai_timeout=%ss top_k=%s weights=%g/%g/%g api_key=%s"
            % (
                self.branches_path,
                self.ai_provider,
                self.ai_timeout_sec,
                self.top_k,
                self.distance_weight,
                self.criteria_weight,
                self.priority_weight,
                mask_secret(self.active_api_key()),
            )
        )
