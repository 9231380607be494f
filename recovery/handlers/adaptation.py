"""
Handler module for plan-wide adaptation requests.

This module coordinates the feedback store, the rule engine, the
alternative selector and the aggregator for the exercises of an active plan.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from aws_lambda_powertools import Logger

from recovery.models.exercise import Exercise
from recovery.models.recommendation import AdaptationRecommendation
from recovery.services.adaptation import AdaptationEngine
from recovery.services.aggregation import RecommendationAggregator
from recovery.services.alternatives import select_alternative
from recovery.services.constants import (
    ADAPTATIONS_FOUND_ANALYSIS,
    WORKING_WELL_ANALYSIS
)
from recovery.services.feedback_store import FeedbackStore

logger = Logger()

def build_overall_analysis(exercise_count: int, recommendations: List[AdaptationRecommendation]) -> str:
    """Summary shown above the recommendations; affirmative when nothing needs changing."""
    if not recommendations:
        return WORKING_WELL_ANALYSIS.format(count=exercise_count)
    return ADAPTATIONS_FOUND_ANALYSIS.format(count=exercise_count, found=len(recommendations))

def resolve_alternative(
    recommendation: AdaptationRecommendation,
    exercise: Exercise,
    catalog: Optional[Mapping[str, Exercise]]
) -> AdaptationRecommendation:
    """Attach a substitute exercise to a replace recommendation when one exists."""
    if not recommendation.should_replace:
        return recommendation
    alternative = select_alternative(exercise, catalog)
    if alternative is None:
        logger.info("No alternative found for replacement", extra={
            "exercise_id": exercise.id,
            "catalog_size": len(catalog) if catalog else 0
        })
        return recommendation
    return recommendation.model_copy(update={"alternative_exercise": alternative})

def generate_plan_recommendations(
    exercises: Sequence[Exercise],
    store: FeedbackStore,
    catalog: Optional[Mapping[str, Exercise]] = None,
    engine: Optional[AdaptationEngine] = None,
    aggregator: Optional[RecommendationAggregator] = None
) -> Dict[str, Any]:
    """
    Generate adaptation recommendations for every exercise in a plan.

    Args:
        exercises: Exercises of the active plan
        store: Feedback record store to snapshot windows from
        catalog: Mapping of exercise ID to Exercise used for substitutes
        engine: Optional engine, a default-configured one otherwise
        aggregator: Optional aggregator, a fresh one otherwise

    Returns:
        Dictionary containing:
        - recommendations: Ordered actionable recommendations
        - overall_analysis: Summary text for the plan
        - exercise_count: Number of exercises evaluated

    Example:
        >>> result = generate_plan_recommendations(plan, store, catalog)
        >>> for rec in result["recommendations"]:
        ...     print(rec.exercise_name, rec.reasoning)
    """
    engine = engine or AdaptationEngine()
    aggregator = aggregator or RecommendationAggregator()

    evaluated = []
    for exercise in exercises:
        window = store.get_window(exercise.id, limit=engine.config.window_size)
        recommendation = engine.evaluate(exercise.id, window)
        evaluated.append(resolve_alternative(recommendation, exercise, catalog))

    recommendations = aggregator.aggregate(evaluated)

    logger.info("Plan recommendations generated", extra={
        "exercise_count": len(exercises),
        "recommendation_count": len(recommendations),
        "replace_count": sum(1 for r in recommendations if r.should_replace)
    })

    return {
        "recommendations": recommendations,
        "overall_analysis": build_overall_analysis(len(exercises), recommendations),
        "exercise_count": len(exercises)
    }
