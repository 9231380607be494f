"""
Handler module for user decisions on adaptation recommendations.

Raw payloads from the presentation layer look like:
    {"action": "accept", "exercise_id": "ex-1", "modifications": [...]}
    {"action": "replace", "exercise_id": "ex-1", "suggested_exercise": {...}}
    {"action": "dismiss", "exercise_id": "ex-1"}
"""
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from recovery.models.decision import (
    AcceptModifications,
    DismissRecommendation,
    PlanDecision,
    ReplaceExercise
)
from recovery.services.aggregation import RecommendationAggregator
from recovery.services.exceptions import InvalidDecisionError
from recovery.utils.logging import logger, log_exception

DECISION_MODELS = {
    "accept": AcceptModifications,
    "replace": ReplaceExercise,
    "dismiss": DismissRecommendation
}

def parse_decision(payload: Mapping[str, Any]) -> PlanDecision:
    """
    Validate a raw decision payload.

    Raises:
        InvalidDecisionError: If the action is unknown or fields are invalid
    """
    if not isinstance(payload, Mapping):
        raise InvalidDecisionError("Decision payload must be a mapping")
    action = payload.get("action")
    if not isinstance(action, str) or action not in DECISION_MODELS:
        raise InvalidDecisionError(f"Unknown decision action: {action!r}")
    try:
        return DECISION_MODELS[action].model_validate(dict(payload))
    except ValidationError as e:
        raise InvalidDecisionError(
            f"Invalid {action} decision: {e.error_count()} validation error(s)"
        ) from e

def handle_decision(
    payload: Mapping[str, Any],
    aggregator: RecommendationAggregator
) -> Dict[str, Any]:
    """
    Parse and dispatch a user decision.

    Args:
        payload: Raw decision payload from the presentation layer
        aggregator: Aggregator whose outbox receives the command

    Returns:
        Dictionary with the dispatched action and exercise ID

    Raises:
        InvalidDecisionError: If the payload is malformed
    """
    try:
        command = parse_decision(payload)
    except InvalidDecisionError:
        log_exception(logger, "Rejected decision payload", level="warning", extra={
            "action": payload.get("action") if isinstance(payload, Mapping) else None
        })
        raise

    aggregator.dispatch(command)
    return {
        "action": command.action,
        "exercise_id": command.exercise_id,
        "issued_at": command.issued_at.isoformat()
    }
