"""
Decision commands sent from the presentation layer back to plan management.

Each command is a one-way notification: once issued it is not retried or
rolled back by this package.
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from recovery.models.exercise import Exercise
from recovery.models.recommendation import ExerciseModification

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class AcceptModifications(BaseModel):
    """User accepted the suggested modifications for an exercise."""
    model_config = ConfigDict(frozen=True)

    action: Literal["accept"] = "accept"
    exercise_id: str
    modifications: List[ExerciseModification]
    issued_at: datetime = Field(default_factory=_utcnow)

class ReplaceExercise(BaseModel):
    """User chose to replace an exercise, optionally with a suggested one."""
    model_config = ConfigDict(frozen=True)

    action: Literal["replace"] = "replace"
    exercise_id: str
    suggested_exercise: Optional[Exercise] = None
    issued_at: datetime = Field(default_factory=_utcnow)

class DismissRecommendation(BaseModel):
    """User dismissed the recommendation for an exercise."""
    model_config = ConfigDict(frozen=True)

    action: Literal["dismiss"] = "dismiss"
    exercise_id: str
    issued_at: datetime = Field(default_factory=_utcnow)

PlanDecision = Union[AcceptModifications, ReplaceExercise, DismissRecommendation]
