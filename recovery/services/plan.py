"""
Applying accepted modifications to plan exercises.
"""
import re
from typing import List

from recovery.models.exercise import Exercise
from recovery.models.recommendation import (
    AdaptedExercise,
    ExerciseModification,
    ModificationType
)

MIN_DURATION_MINUTES = 5
DURATION_REDUCTION = 0.75
REPS_STEP = 2
REST_STEP_SECONDS = 30
DEFAULT_REST_SECONDS = 60

_DURATION_PATTERN = re.compile(r"(\d+)")

def _parse_minutes(duration: str) -> int:
    match = _DURATION_PATTERN.search(duration or "")
    return int(match.group(1)) if match else 10

def _is_reduction(modification: ExerciseModification) -> bool:
    text = modification.description.lower()
    return "reduce" in text or "decrease" in text

def _is_increase(modification: ExerciseModification) -> bool:
    return "increase" in modification.description.lower()

def calculate_confidence(modifications: List[ExerciseModification]) -> float:
    """Confidence in an adaptation, growing with the number of modifications."""
    return min(1.0, max(0.3, len(modifications) * 0.2))

def apply_modifications(
    exercise: Exercise,
    modifications: List[ExerciseModification]
) -> AdaptedExercise:
    """
    Apply accepted modifications to an exercise.

    Args:
        exercise: Plan exercise to adapt
        modifications: Modifications the user accepted

    Returns:
        AdaptedExercise carrying the adjusted parameters, the applied
        modifications and a short adaptation reason
    """
    updates = {}
    reasons = []

    for modification in modifications:
        if modification.type == ModificationType.INTENSITY:
            if _is_reduction(modification):
                reasons.append("reduced intensity for comfort")
            elif _is_increase(modification):
                reasons.append("increased intensity for better challenge")

        elif modification.type == ModificationType.DURATION:
            if _is_reduction(modification):
                minutes = _parse_minutes(exercise.duration)
                new_minutes = max(MIN_DURATION_MINUTES, round(minutes * DURATION_REDUCTION))
                updates["duration"] = f"{new_minutes} min"
                reasons.append("shortened duration")

        elif modification.type == ModificationType.REPS:
            if exercise.reps is not None:
                if _is_increase(modification):
                    updates["reps"] = exercise.reps + REPS_STEP
                elif _is_reduction(modification):
                    updates["reps"] = max(1, exercise.reps - REPS_STEP)
            reasons.append("adjusted repetitions")

        elif modification.type == ModificationType.WEIGHT:
            reasons.append("adjusted weight")

        elif modification.type == ModificationType.REST:
            rest = exercise.rest_time if exercise.rest_time is not None else DEFAULT_REST_SECONDS
            updates["rest_time"] = rest + REST_STEP_SECONDS
            reasons.append("added rest period")

        elif modification.type == ModificationType.ALTERNATIVE:
            reasons.append("alternative exercise recommended")

    # Keep the order of first appearance
    unique_reasons = list(dict.fromkeys(reasons))
    adaptation_reason = "Adapted based on your feedback"
    if unique_reasons:
        adaptation_reason += ": " + ", ".join(unique_reasons)

    return AdaptedExercise(
        **{
            **exercise.model_dump(),
            **updates,
            "modifications": modifications,
            "adaptation_reason": adaptation_reason,
            "original_exercise": exercise,
            "confidence_score": calculate_confidence(modifications)
        }
    )
