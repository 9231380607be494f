"""
Aggregation of per-exercise recommendations for presentation, and the
terminal decisions the user can take on them.

Decisions are put on an outbox queue as commands for the plan-management
side to consume. They are one-way: nothing here retries or rolls them back.

Typical usage:
    aggregator = RecommendationAggregator()
    ordered = aggregator.aggregate(recommendations)
    aggregator.dismiss(ordered[0].exercise_id)
    command = aggregator.outbox.get_nowait()
"""
from queue import Queue
from typing import Dict, Iterable, List, Optional

from recovery.models.decision import (
    AcceptModifications,
    DismissRecommendation,
    PlanDecision,
    ReplaceExercise
)
from recovery.models.exercise import Exercise
from recovery.models.recommendation import (
    AdaptationRecommendation,
    ExerciseModification,
    ModificationType
)
from recovery.utils.logging import logger

def _merge_reasons(*reasons: str) -> str:
    merged = []
    for reason in reasons:
        for part in reason.split("; "):
            if part and part not in merged:
                merged.append(part)
    return "; ".join(merged)

def dedupe_modifications(modifications: Iterable[ExerciseModification]) -> List[ExerciseModification]:
    """
    Keep one modification per type.

    The higher priority modification wins and the reasons of both are joined
    with a semicolon. The result is ordered by priority, keeping first-seen
    order within a priority.
    """
    by_type: Dict[ModificationType, ExerciseModification] = {}
    for modification in modifications:
        current = by_type.get(modification.type)
        if current is None:
            by_type[modification.type] = modification
            continue
        if modification.priority.rank < current.priority.rank:
            winner, other = modification, current
        else:
            winner, other = current, modification
        by_type[modification.type] = winner.model_copy(update={
            "reason": _merge_reasons(winner.reason, other.reason)
        })
    return sorted(by_type.values(), key=lambda m: m.priority.rank)

def merge_recommendations(recommendations: List[AdaptationRecommendation]) -> AdaptationRecommendation:
    """Combine several recommendations for the same exercise into one."""
    first = recommendations[0]
    if len(recommendations) == 1:
        return first.model_copy(update={
            "modifications": dedupe_modifications(first.modifications),
            "alternative_exercise": first.alternative_exercise if first.should_replace else None
        })

    modifications = [m for rec in recommendations for m in rec.modifications]
    should_replace = any(rec.should_replace for rec in recommendations)
    alternative = next(
        (rec.alternative_exercise for rec in recommendations if rec.alternative_exercise),
        None
    )
    return AdaptationRecommendation(
        exercise_id=first.exercise_id,
        exercise_name=first.exercise_name,
        modifications=dedupe_modifications(modifications),
        should_replace=should_replace,
        alternative_exercise=alternative if should_replace else None,
        reasoning=_merge_reasons(*(rec.reasoning for rec in recommendations))
    )

def _display_key(recommendation: AdaptationRecommendation):
    if recommendation.has_high_priority:
        group = 0
    elif recommendation.should_replace:
        group = 1
    else:
        group = 2
    return (group, -len(recommendation.modifications), recommendation.exercise_id)

def aggregate(recommendations: Iterable[AdaptationRecommendation]) -> List[AdaptationRecommendation]:
    """
    Order and dedupe recommendations for presentation.

    Args:
        recommendations: Per-exercise recommendations, possibly several for
            the same exercise

    Returns:
        Actionable recommendations, one per exercise: those with a high
        priority modification first, then replace signals, then by number
        of modifications. Never raises; an empty list means every exercise
        is working well.
    """
    try:
        grouped: Dict[str, List[AdaptationRecommendation]] = {}
        for recommendation in recommendations or []:
            grouped.setdefault(recommendation.exercise_id, []).append(recommendation)

        merged = [merge_recommendations(group) for group in grouped.values()]
        actionable = [rec for rec in merged if rec.is_actionable]

        logger.info("Recommendations aggregated", extra={
            "exercise_count": len(grouped),
            "actionable_count": len(actionable)
        })
        return sorted(actionable, key=_display_key)
    except Exception as e:
        logger.exception("Error aggregating recommendations", extra={
            "error": str(e),
            "error_type": e.__class__.__name__
        })
        return []

class RecommendationAggregator:
    """Aggregates recommendations and dispatches the user's decisions."""

    def __init__(self, outbox: Optional[Queue] = None):
        self.outbox = outbox if outbox is not None else Queue()

    def aggregate(self, recommendations: Iterable[AdaptationRecommendation]) -> List[AdaptationRecommendation]:
        return aggregate(recommendations)

    def accept_modifications(
        self,
        exercise_id: str,
        modifications: List[ExerciseModification]
    ) -> AcceptModifications:
        """Send the accepted modifications for an exercise to plan management."""
        command = AcceptModifications(exercise_id=exercise_id, modifications=modifications)
        return self._dispatch(command, modification_count=len(modifications))

    def replace_exercise(
        self,
        exercise_id: str,
        suggested_exercise: Optional[Exercise] = None
    ) -> ReplaceExercise:
        """Ask plan management to replace an exercise."""
        command = ReplaceExercise(exercise_id=exercise_id, suggested_exercise=suggested_exercise)
        return self._dispatch(command, has_alternative=suggested_exercise is not None)

    def dismiss(self, exercise_id: str) -> DismissRecommendation:
        """Dismiss the recommendation for an exercise."""
        return self._dispatch(DismissRecommendation(exercise_id=exercise_id))

    def dispatch(self, command: PlanDecision) -> PlanDecision:
        """Dispatch an already built decision command."""
        return self._dispatch(command)

    def _dispatch(self, command: PlanDecision, **context) -> PlanDecision:
        self.outbox.put_nowait(command)
        logger.info("Plan decision dispatched", extra={
            "action": command.action,
            "exercise_id": command.exercise_id,
            **context
        })
        return command
