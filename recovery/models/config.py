"""
Threshold configuration for the adaptation rule engine.
"""
import os
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "ADAPTATION_"

class AdaptationConfig(BaseModel):
    """
    Immutable rule thresholds. All ratings use the 1-10 scale.
    """
    model_config = ConfigDict(frozen=True)

    window_size: int = Field(5, ge=1)

    high_pain_average: float = Field(7.0, ge=1, le=10)
    pain_spike_delta: float = Field(2.0, gt=0)
    severe_pain_level: int = Field(8, ge=1, le=10)
    severe_pain_count: int = Field(2, ge=1)
    severe_pain_lookback: int = Field(3, ge=1)

    easy_difficulty_average: float = Field(3.0, ge=1, le=10)
    hard_difficulty_average: float = Field(8.0, ge=1, le=10)

    low_enjoyment_average: float = Field(3.0, ge=1, le=10)
    low_enjoyment_min_records: int = Field(3, ge=1)
    persistent_low_enjoyment: int = Field(2, ge=1, le=10)

    low_effectiveness_level: int = Field(4, ge=1, le=10)
    min_effectiveness_records: int = Field(2, ge=1)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AdaptationConfig":
        """
        Build a config from ADAPTATION_* environment variables.

        Example:
            ADAPTATION_WINDOW_SIZE=3 overrides window_size; unset fields
            keep their defaults.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return cls(**overrides)
