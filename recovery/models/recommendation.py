"""
Recommendation models for feedback-driven exercise adaptations.
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from recovery.models.exercise import Exercise

class ModificationType(str, Enum):
    """Kind of change suggested for an exercise."""
    INTENSITY = "intensity"
    DURATION = "duration"
    REPS = "reps"
    WEIGHT = "weight"
    ALTERNATIVE = "alternative"
    REST = "rest"

class Priority(str, Enum):
    """
    Display urgency of a modification.
    """
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, most urgent first."""
        return list(Priority).index(self)

class ExerciseModification(BaseModel):
    """
    One suggested change, with the evidence that triggered it.
    """
    model_config = ConfigDict(frozen=True)

    type: ModificationType
    priority: Priority
    description: str
    reason: str

class AdaptationRecommendation(BaseModel):
    """
    Engine output for a single exercise.

    Derived fresh from a feedback window on every evaluation and never
    persisted; the same window always yields an equal recommendation.
    """
    exercise_id: str
    exercise_name: str
    modifications: List[ExerciseModification] = Field(default_factory=list)
    should_replace: bool = False
    alternative_exercise: Optional[Exercise] = None
    reasoning: str

    @property
    def is_actionable(self) -> bool:
        """Check if there is anything for the user to accept or replace."""
        return bool(self.modifications) or self.should_replace

    @property
    def has_high_priority(self) -> bool:
        return any(m.priority == Priority.HIGH for m in self.modifications)

class AdaptedExercise(Exercise):
    """
    Exercise with accepted modifications applied.
    """
    modifications: List[ExerciseModification]
    adaptation_reason: str
    original_exercise: Exercise
    confidence_score: float = Field(..., ge=0, le=1)

class DiagnosticEvent(BaseModel):
    """
    Structured event emitted while evaluating rules, used for threshold tuning.
    """
    event: str
    exercise_id: str
    rule_name: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
