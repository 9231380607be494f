"""
Pytest configuration and shared fixtures.
"""
import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

from recovery.models.exercise import Exercise, ExerciseLevel
from recovery.models.feedback import FeedbackRecord
from recovery.services.adaptation import AdaptationEngine

BASE_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

@pytest.fixture
def make_record() -> Callable[..., FeedbackRecord]:
    """Factory for feedback records; the n-th record is n days after BASE_TIME."""
    def _make(
        n: int = 0,
        pain: int = 3,
        difficulty: int = 5,
        status: str = "completed",
        exercise_id: str = "ex-squat",
        exercise_name: str = "Wall Squat",
        **overrides
    ) -> FeedbackRecord:
        created = BASE_TIME + timedelta(days=n)
        data = {
            "session_id": f"session-{n}",
            "exercise_id": exercise_id,
            "exercise_name": exercise_name,
            "pain_level": pain,
            "difficulty_rating": difficulty,
            "completion_status": status,
            "time_of_day": "morning",
            "duration_minutes": 15,
            "created_at": created,
            "updated_at": created,
        }
        data.update(overrides)
        return FeedbackRecord(**data)
    return _make

@pytest.fixture
def raw_record() -> Dict:
    """Raw feedback payload as it would arrive from the store."""
    return {
        "session_id": "session-raw",
        "exercise_id": "ex-squat",
        "exercise_name": "Wall Squat",
        "pain_level": 4,
        "difficulty_rating": 5,
        "completion_status": "completed",
        "time_of_day": "evening",
        "duration_minutes": 20,
        "created_at": "2025-03-01T09:00:00+00:00",
        "updated_at": "2025-03-01T09:00:00+00:00",
    }

@pytest.fixture
def diagnostics() -> List:
    """Collects diagnostic events emitted by the engine."""
    return []

@pytest.fixture
def engine(diagnostics) -> AdaptationEngine:
    """Engine with default thresholds and a collecting diagnostics sink."""
    return AdaptationEngine(diagnostics=diagnostics.append)

@pytest.fixture
def squat() -> Exercise:
    return Exercise(
        id="ex-squat",
        name="Wall Squat",
        target_muscles=["Quadriceps", "Glutes"],
        level=ExerciseLevel.INTERMEDIATE,
        difficulty=3,
        sets=3,
        reps=10,
        rest_time=60,
        duration="10 min"
    )

@pytest.fixture
def catalog(squat) -> Dict[str, Exercise]:
    """Exercise catalog keyed by exercise ID."""
    exercises = [
        squat,
        Exercise(
            id="ex-glute-bridge",
            name="Glute Bridge",
            target_muscles=["glutes", "hamstrings"],
            level=ExerciseLevel.BEGINNER,
            difficulty=1
        ),
        Exercise(
            id="ex-step-up",
            name="Step Up",
            target_muscles=["quadriceps", "glutes"],
            level=ExerciseLevel.INTERMEDIATE,
            difficulty=3
        ),
        Exercise(
            id="ex-pistol",
            name="Pistol Squat",
            target_muscles=["quadriceps", "glutes", "core"],
            level=ExerciseLevel.ADVANCED,
            difficulty=5
        ),
        Exercise(
            id="ex-row",
            name="Band Row",
            target_muscles=["upper back"],
            level=ExerciseLevel.BEGINNER,
            difficulty=1
        ),
    ]
    return {exercise.id: exercise for exercise in exercises}
