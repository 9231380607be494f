"""
Tests for recommendation aggregation and decision dispatch.
"""
import pytest
from queue import Queue
from unittest.mock import patch

from recovery.models.decision import AcceptModifications, DismissRecommendation, ReplaceExercise
from recovery.models.recommendation import (
    AdaptationRecommendation,
    ExerciseModification,
    ModificationType,
    Priority
)
from recovery.services.aggregation import (
    RecommendationAggregator,
    aggregate,
    dedupe_modifications
)

def _mod(mod_type, priority, reason="reason"):
    return ExerciseModification(
        type=mod_type,
        priority=priority,
        description=f"{mod_type.value} change",
        reason=reason
    )

def _rec(exercise_id, modifications=(), should_replace=False, reasoning="Based on 3 feedback sessions"):
    return AdaptationRecommendation(
        exercise_id=exercise_id,
        exercise_name=exercise_id.title(),
        modifications=list(modifications),
        should_replace=should_replace,
        reasoning=reasoning
    )

def test_dedupe_keeps_higher_priority_and_merges_reasons():
    """Test two modifications of the same type collapse into one."""
    modifications = [
        _mod(ModificationType.INTENSITY, Priority.MEDIUM, "Pain level is moderate"),
        _mod(ModificationType.INTENSITY, Priority.HIGH, "Average pain level is high"),
    ]

    result = dedupe_modifications(modifications)

    assert len(result) == 1
    assert result[0].priority == Priority.HIGH
    assert result[0].reason == "Average pain level is high; Pain level is moderate"

def test_dedupe_equal_priority_keeps_first():
    """Test equal priorities keep the first modification."""
    first = _mod(ModificationType.ALTERNATIVE, Priority.MEDIUM, "Low effectiveness")
    second = _mod(ModificationType.ALTERNATIVE, Priority.MEDIUM, "Frequently modified")

    result = dedupe_modifications([first, second])

    assert result[0].description == first.description
    assert result[0].reason == "Low effectiveness; Frequently modified"

def test_aggregate_never_returns_duplicate_types():
    """Test the dedup law holds across merged recommendations."""
    recommendations = [
        _rec("squat", [
            _mod(ModificationType.ALTERNATIVE, Priority.MEDIUM),
            _mod(ModificationType.ALTERNATIVE, Priority.LOW),
            _mod(ModificationType.REST, Priority.HIGH),
        ]),
        _rec("squat", [_mod(ModificationType.REST, Priority.LOW, "other")]),
        _rec("bridge", [
            _mod(ModificationType.REPS, Priority.MEDIUM),
            _mod(ModificationType.REPS, Priority.MEDIUM),
        ]),
    ]

    result = aggregate(recommendations)

    assert len(result) == 2
    for recommendation in result:
        types = [m.type for m in recommendation.modifications]
        assert len(types) == len(set(types))

def test_aggregate_merges_same_exercise():
    """Test recommendations for one exercise become a single entry."""
    recommendations = [
        _rec("squat", [_mod(ModificationType.INTENSITY, Priority.HIGH)], reasoning="high pain"),
        _rec("squat", should_replace=True, reasoning="low enjoyment"),
    ]

    result = aggregate(recommendations)

    assert len(result) == 1
    assert result[0].should_replace is True
    assert result[0].reasoning == "high pain; low enjoyment"

def test_aggregate_ordering():
    """Test high priority first, then replace signals, then by modification count."""
    recommendations = [
        _rec("a-few", [_mod(ModificationType.REPS, Priority.MEDIUM)]),
        _rec("b-many", [
            _mod(ModificationType.REPS, Priority.MEDIUM),
            _mod(ModificationType.WEIGHT, Priority.MEDIUM),
        ]),
        _rec("c-replace", [_mod(ModificationType.ALTERNATIVE, Priority.LOW)], should_replace=True),
        _rec("d-high", [_mod(ModificationType.INTENSITY, Priority.HIGH)]),
        _rec("a-also-few", [_mod(ModificationType.DURATION, Priority.LOW)]),
    ]

    result = aggregate(recommendations)

    assert [r.exercise_id for r in result] == [
        "d-high", "c-replace", "b-many", "a-also-few", "a-few"
    ]

def test_aggregate_drops_non_actionable():
    """Test exercises working well are not presented."""
    result = aggregate([_rec("squat"), _rec("bridge", [_mod(ModificationType.REPS, Priority.LOW)])])
    assert [r.exercise_id for r in result] == ["bridge"]

def test_aggregate_empty_input():
    """Test aggregating nothing."""
    assert aggregate([]) == []
    assert aggregate(None) == []

def test_aggregate_never_raises():
    """Test malformed input degrades to an empty result."""
    assert aggregate([object()]) == []

def test_aggregate_failure_logs_traceback():
    """Test unexpected failures are logged with their traceback."""
    with patch("recovery.services.aggregation.logger") as mock_logger:
        assert aggregate([object()]) == []
    mock_logger.exception.assert_called_once()

def test_alternative_only_kept_with_replace(catalog):
    """Test a suggested exercise is only presented alongside a replace signal."""
    step_up = catalog["ex-step-up"]
    keep = _rec("squat", should_replace=True).model_copy(update={"alternative_exercise": step_up})
    drop = _rec("bridge", [_mod(ModificationType.REPS, Priority.LOW)]).model_copy(
        update={"alternative_exercise": step_up}
    )

    result = {r.exercise_id: r for r in aggregate([keep, drop])}

    assert result["squat"].alternative_exercise == step_up
    assert result["bridge"].alternative_exercise is None

def test_accept_modifications_dispatches_command():
    """Test accepting modifications puts a command on the outbox."""
    outbox = Queue()
    aggregator = RecommendationAggregator(outbox)
    modifications = [_mod(ModificationType.INTENSITY, Priority.HIGH)]

    command = aggregator.accept_modifications("squat", modifications)

    assert isinstance(command, AcceptModifications)
    assert command.action == "accept"
    assert outbox.get_nowait() == command
    assert command.modifications == modifications

def test_replace_exercise_dispatches_command(catalog):
    """Test replacing an exercise carries the suggestion."""
    aggregator = RecommendationAggregator()
    suggestion = catalog["ex-glute-bridge"]

    command = aggregator.replace_exercise("ex-squat", suggestion)

    assert isinstance(command, ReplaceExercise)
    assert command.suggested_exercise == suggestion
    assert aggregator.outbox.get_nowait() is command

def test_replace_without_suggestion():
    """Test replacement can be requested without a specific exercise."""
    command = RecommendationAggregator().replace_exercise("ex-squat")
    assert command.suggested_exercise is None

def test_dismiss_dispatches_command():
    """Test dismissing a recommendation."""
    aggregator = RecommendationAggregator()

    command = aggregator.dismiss("ex-squat")

    assert isinstance(command, DismissRecommendation)
    assert aggregator.outbox.qsize() == 1

def test_commands_are_frozen():
    """Test dispatched commands cannot be changed afterwards."""
    command = RecommendationAggregator().dismiss("ex-squat")
    with pytest.raises(Exception):
        command.exercise_id = "other"
