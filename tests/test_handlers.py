"""
Tests for plan recommendation and decision handlers.
"""
import pytest
from unittest.mock import Mock

from recovery.handlers.adaptation import (
    build_overall_analysis,
    generate_plan_recommendations,
    resolve_alternative
)
from recovery.handlers.decisions import handle_decision, parse_decision
from recovery.models.decision import AcceptModifications, DismissRecommendation, ReplaceExercise
from recovery.models.recommendation import AdaptationRecommendation
from recovery.services.adaptation import AdaptationEngine
from recovery.services.aggregation import RecommendationAggregator
from recovery.services.exceptions import InvalidDecisionError
from recovery.services.feedback_store import FeedbackStore

@pytest.fixture
def store(make_record) -> FeedbackStore:
    """Store where the squat hurts and the glute bridge is too easy."""
    store = FeedbackStore()
    for n, pain in enumerate([8, 9, 8]):
        store.append(make_record(n, pain=pain))
    for n in range(4):
        store.append(make_record(
            n, pain=1, difficulty=2,
            exercise_id="ex-glute-bridge", exercise_name="Glute Bridge"
        ))
    return store

def test_generate_plan_recommendations(store, catalog):
    """Test the plan flow from store snapshots to ordered recommendations."""
    plan = [catalog["ex-glute-bridge"], catalog["ex-squat"], catalog["ex-row"]]

    result = generate_plan_recommendations(plan, store, catalog)

    recommendations = result["recommendations"]
    assert [r.exercise_id for r in recommendations] == ["ex-squat", "ex-glute-bridge"]
    squat = recommendations[0]
    assert squat.should_replace is True
    assert squat.alternative_exercise.id == "ex-step-up"
    assert recommendations[1].alternative_exercise is None
    assert result["exercise_count"] == 3
    assert "2 opportunities" in result["overall_analysis"]

def test_generate_plan_recommendations_working_well(catalog):
    """Test an affirmative analysis when nothing is actionable."""
    result = generate_plan_recommendations([catalog["ex-squat"]], FeedbackStore(), catalog)

    assert result["recommendations"] == []
    assert "working well" in result["overall_analysis"]

def test_generate_plan_recommendations_uses_engine_window(store, catalog):
    """Test the store is read with the engine's window size."""
    engine = AdaptationEngine()
    spy = Mock(wraps=store)

    generate_plan_recommendations([catalog["ex-squat"]], spy, catalog, engine=engine)

    spy.get_window.assert_called_once_with("ex-squat", limit=engine.config.window_size)

def test_replace_without_catalog_match(store, catalog):
    """Test replacement stays recommended when no substitute exists."""
    result = generate_plan_recommendations([catalog["ex-squat"]], store, catalog={})

    squat = result["recommendations"][0]
    assert squat.should_replace is True
    assert squat.alternative_exercise is None

def test_resolve_alternative_ignores_non_replace(squat, catalog):
    recommendation = AdaptationRecommendation(
        exercise_id="ex-squat",
        exercise_name="Wall Squat",
        reasoning="insufficient data"
    )
    assert resolve_alternative(recommendation, squat, catalog) is recommendation

def test_build_overall_analysis():
    assert "3 exercises are working well" in build_overall_analysis(3, [])

def test_handle_accept_decision():
    """Test an accept payload is dispatched to the outbox."""
    aggregator = RecommendationAggregator()
    payload = {
        "action": "accept",
        "exercise_id": "ex-squat",
        "modifications": [{
            "type": "intensity",
            "priority": "high",
            "description": "Reduce exercise intensity by 30-40%",
            "reason": "Average pain level is high (7.3/10)"
        }]
    }

    result = handle_decision(payload, aggregator)

    assert result["action"] == "accept"
    assert result["exercise_id"] == "ex-squat"
    command = aggregator.outbox.get_nowait()
    assert isinstance(command, AcceptModifications)
    assert command.modifications[0].type.value == "intensity"

def test_handle_replace_and_dismiss_decisions():
    aggregator = RecommendationAggregator()

    handle_decision({"action": "replace", "exercise_id": "ex-squat"}, aggregator)
    handle_decision({"action": "dismiss", "exercise_id": "ex-row"}, aggregator)

    assert isinstance(aggregator.outbox.get_nowait(), ReplaceExercise)
    assert isinstance(aggregator.outbox.get_nowait(), DismissRecommendation)

@pytest.mark.parametrize("payload", [
    {"action": "archive", "exercise_id": "ex-squat"},
    {"exercise_id": "ex-squat"},
    {"action": "accept", "exercise_id": "ex-squat"},
    {"action": "accept", "exercise_id": "ex-squat", "modifications": [{"type": "stretch"}]},
    {"action": "dismiss"},
])
def test_invalid_decisions_raise(payload):
    """Test malformed payloads are rejected without dispatching."""
    aggregator = RecommendationAggregator()

    with pytest.raises(InvalidDecisionError):
        handle_decision(payload, aggregator)
    assert aggregator.outbox.empty()

def test_parse_decision_rejects_non_mapping():
    with pytest.raises(InvalidDecisionError):
        parse_decision(["dismiss"])
