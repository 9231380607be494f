"""
Exercise catalog model definitions.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

class ExerciseLevel(str, Enum):
    """
    Exercise experience levels, easiest first.
    """
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"

    @property
    def rank(self) -> int:
        """Position of the level on the beginner-to-advanced scale."""
        return list(ExerciseLevel).index(self)

class Exercise(BaseModel):
    """
    Represents a catalog exercise that can be part of a recovery plan.
    """
    id: str
    name: str
    target_muscles: List[str] = Field(default_factory=list)
    level: ExerciseLevel
    difficulty: int = Field(..., ge=1, le=5)
    sets: Optional[int] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    hold_time: Optional[int] = Field(None, ge=0)  # seconds
    rest_time: Optional[int] = Field(None, ge=0)  # seconds between sets
    duration: Optional[str] = None  # display text, e.g. "10 min"

