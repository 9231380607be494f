"""
Feedback models for post-exercise ratings and derived feedback analytics.
"""
from enum import Enum
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class CompletionStatus(str, Enum):
    """How far the user got through an exercise attempt."""
    COMPLETED = "completed"
    PARTIAL = "partial"
    MODIFIED = "modified"

class TimeOfDay(str, Enum):
    """Part of the day the session took place."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

class FeedbackRecord(BaseModel):
    """
    One completed exercise attempt as rated by the user.

    Records are append-only: a correction is stored as a new record, so the
    model is frozen once created. Pain and difficulty are always present;
    the remaining ratings are optional and must never be read as zero.
    """
    model_config = ConfigDict(frozen=True)

    session_id: str
    exercise_id: str
    exercise_name: str

    pain_level: int = Field(..., ge=1, le=10)  # 1 = no pain, 10 = severe
    difficulty_rating: int = Field(..., ge=1, le=10)  # 1 = very easy

    energy_level: Optional[int] = Field(None, ge=1, le=10)
    enjoyment_rating: Optional[int] = Field(None, ge=1, le=10)
    perceived_effectiveness: Optional[int] = Field(None, ge=1, le=10)

    completion_status: CompletionStatus
    modifications: Optional[str] = None
    notes: Optional[str] = None

    time_of_day: TimeOfDay
    duration_minutes: int = Field(..., ge=0)
    sets_completed: Optional[int] = Field(None, ge=0)
    reps_completed: Optional[int] = Field(None, ge=0)
    weight_used: Optional[float] = Field(None, ge=0)

    created_at: datetime
    updated_at: datetime

class TrendDirection(str, Enum):
    """Direction of an exercise's pain trend."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"

class FeedbackTrend(BaseModel):
    """Pain and difficulty summary for a single exercise."""
    exercise_id: str
    exercise_name: str
    average_pain_level: float
    average_difficulty_rating: float
    total_sessions: int
    improvement_trend: TrendDirection
    last_feedback_date: datetime

class FeedbackAnalysis(BaseModel):
    """
    User-level analysis across every exercise with recent feedback.
    """
    user_id: str
    overall_pain_trend: str = Field(..., pattern="^(improving|stable|worsening)$")
    average_pain_level: float
    average_difficulty_rating: float
    most_effective_exercises: List[str]
    least_effective_exercises: List[str]
    recommended_modifications: List[str]
    progress_score: int = Field(..., ge=0, le=100)
    analysis_date: datetime
