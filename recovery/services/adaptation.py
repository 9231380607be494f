"""
Service module for deriving exercise adaptations from user feedback.

The engine is a pure function of a feedback window and an immutable
threshold configuration. It holds no per-user state, so one instance can be
shared between threads and evaluations.

Typical usage:
    engine = AdaptationEngine(AdaptationConfig.from_env())
    window = store.get_window(exercise_id, limit=engine.config.window_size)
    recommendation = engine.evaluate(exercise_id, window)
    if recommendation.should_replace:
        ...
"""
from collections import Counter
from dataclasses import dataclass, field
from statistics import mean
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from recovery.models.config import AdaptationConfig
from recovery.models.feedback import CompletionStatus, FeedbackRecord
from recovery.models.recommendation import (
    AdaptationRecommendation,
    DiagnosticEvent,
    ExerciseModification,
    ModificationType,
    Priority
)
from recovery.services.constants import (
    DIFFICULTY_HIGH_RULE,
    DIFFICULTY_LOW_RULE,
    EFFECTIVENESS_RULE,
    ENJOYMENT_RULE,
    EVALUATION_FAILED,
    EXERCISE_MISMATCH,
    INCONSISTENT_WINDOW,
    INSUFFICIENT_DATA,
    INVALID_RECORD,
    MISSING_REQUIRED_FIELD,
    MODIFICATION_TEXT,
    MODIFIED_COMPLETION_RULE,
    NO_DATA,
    NOT_ENOUGH_RECORDS,
    PAIN_RULE,
    RECORD_SKIPPED,
    REQUIRED_FEEDBACK_FIELDS,
    RULE_FIRED,
    RULE_SKIPPED
)
from recovery.services.utils import is_chronological, sort_chronologically
from recovery.utils.logging import logger

FeedbackInput = Union[FeedbackRecord, Mapping[str, Any]]
DiagnosticSink = Callable[[DiagnosticEvent], None]

LOAD_RULES = (PAIN_RULE, DIFFICULTY_HIGH_RULE, DIFFICULTY_LOW_RULE)

@dataclass
class _Evaluation:
    """Working state for a single evaluate() call."""
    exercise_id: str
    records: List[FeedbackRecord]
    modifications: List[ExerciseModification] = field(default_factory=list)
    findings: List[str] = field(default_factory=list)
    fired: List[str] = field(default_factory=list)
    should_replace: bool = False

    def add(
        self,
        rule: str,
        mod_type: ModificationType,
        priority: Priority,
        description: str,
        reason: str,
        finding: Optional[str] = None
    ) -> ExerciseModification:
        modification = ExerciseModification(
            type=mod_type,
            priority=priority,
            description=description,
            reason=reason
        )
        self.modifications.append(modification)
        if rule not in self.fired:
            self.fired.append(rule)
        if finding and finding not in self.findings:
            self.findings.append(finding)
        return modification

class AdaptationEngine:
    """Engine for generating exercise adaptations based on feedback windows."""

    def __init__(
        self,
        config: Optional[AdaptationConfig] = None,
        diagnostics: Optional[DiagnosticSink] = None
    ):
        self.config = config or AdaptationConfig()
        self._diagnostics = diagnostics

    def evaluate(
        self,
        exercise_id: str,
        feedback_window: Optional[Iterable[FeedbackInput]],
        config: Optional[AdaptationConfig] = None
    ) -> AdaptationRecommendation:
        """
        Evaluate an exercise's feedback window against the adaptation rules.

        Args:
            exercise_id: Exercise the window belongs to
            feedback_window: Recent feedback records (models or raw dicts),
                in any order
            config: Optional thresholds overriding the engine's own

        Returns:
            AdaptationRecommendation for the exercise. Malformed input never
            raises; it degrades to a recommendation without modifications.
        """
        exercise_id = "" if exercise_id is None else str(exercise_id)
        config = config or self.config
        try:
            return self._evaluate(exercise_id, feedback_window, config)
        except Exception as e:
            logger.exception("Error evaluating feedback window", extra={
                "exercise_id": exercise_id,
                "error": str(e),
                "error_type": e.__class__.__name__
            })
            self._emit(EVALUATION_FAILED, exercise_id, details={
                "error_type": e.__class__.__name__
            })
            return self._insufficient_data(exercise_id)

    def _evaluate(
        self,
        exercise_id: str,
        feedback_window: Optional[Iterable[FeedbackInput]],
        config: AdaptationConfig
    ) -> AdaptationRecommendation:
        items = list(feedback_window or [])
        if not items:
            return self._insufficient_data(exercise_id)

        records = self._prepare_window(exercise_id, items, config)
        if not records:
            return self._insufficient_data(exercise_id, self._exercise_name(exercise_id, items))

        evaluation = _Evaluation(exercise_id=exercise_id, records=records)
        self._apply_pain_rule(evaluation, config)
        self._apply_difficulty_rules(evaluation, config)
        self._apply_enjoyment_rule(evaluation, config)
        self._apply_effectiveness_rule(evaluation, config)
        self._apply_modified_completion_rule(evaluation, config)

        # sorted() is stable, so rule order is kept within a priority
        modifications = sorted(evaluation.modifications, key=lambda m: m.priority.rank)

        return AdaptationRecommendation(
            exercise_id=exercise_id,
            exercise_name=records[-1].exercise_name,
            modifications=modifications,
            should_replace=evaluation.should_replace,
            reasoning=self._build_reasoning(evaluation)
        )

    def _prepare_window(
        self,
        exercise_id: str,
        items: List[FeedbackInput],
        config: AdaptationConfig
    ) -> List[FeedbackRecord]:
        """Validate, filter and chronologically sort the window."""
        valid = []
        for position, item in enumerate(items):
            record = self._coerce_record(exercise_id, position, item)
            if record is None:
                continue
            if record.exercise_id != exercise_id:
                self._emit(RECORD_SKIPPED, exercise_id, details={
                    "position": position,
                    "reason": EXERCISE_MISMATCH,
                    "record_exercise_id": record.exercise_id
                })
                continue
            valid.append(record)

        if not is_chronological(valid):
            self._emit(INCONSISTENT_WINDOW, exercise_id, details={
                "record_count": len(valid)
            })
        ordered = sort_chronologically(valid)
        return ordered[-config.window_size:]

    def _coerce_record(
        self,
        exercise_id: str,
        position: int,
        item: FeedbackInput
    ) -> Optional[FeedbackRecord]:
        if isinstance(item, FeedbackRecord):
            return item
        try:
            if isinstance(item, Mapping):
                return FeedbackRecord.model_validate(dict(item))
            return FeedbackRecord.model_validate(item)
        except ValidationError as e:
            missing = [
                name for name in REQUIRED_FEEDBACK_FIELDS
                if not isinstance(item, Mapping) or item.get(name) is None
            ]
            self._emit(RECORD_SKIPPED, exercise_id, details={
                "position": position,
                "reason": MISSING_REQUIRED_FIELD if missing else INVALID_RECORD,
                "missing_fields": missing,
                "error_count": e.error_count()
            })
            return None

    def _apply_pain_rule(self, evaluation: _Evaluation, config: AdaptationConfig) -> None:
        """Pain dominates: severe recent pain favors replacement over tuning."""
        pain_levels = [r.pain_level for r in evaluation.records]
        avg_pain = mean(pain_levels)

        recent = pain_levels[-config.severe_pain_lookback:]
        severe_count = sum(1 for p in recent if p >= config.severe_pain_level)
        if severe_count >= config.severe_pain_count:
            evaluation.should_replace = True
            evaluation.add(
                PAIN_RULE,
                ModificationType.ALTERNATIVE,
                Priority.HIGH,
                MODIFICATION_TEXT["replace_gentler"],
                f"Pain of {config.severe_pain_level}/10 or more in {severe_count} "
                f"of the last {len(recent)} sessions",
                finding=f"severe pain in {severe_count} of the last {len(recent)} sessions"
            )
            self._emit(RULE_FIRED, evaluation.exercise_id, PAIN_RULE, {
                "severe_count": severe_count,
                "average_pain": round(avg_pain, 2),
                "should_replace": True
            })
            return

        latest = pain_levels[-1]
        if avg_pain >= config.high_pain_average:
            evaluation.add(
                PAIN_RULE,
                ModificationType.INTENSITY,
                Priority.HIGH,
                MODIFICATION_TEXT["reduce_intensity"],
                f"Average pain level is high ({avg_pain:.1f}/10)",
                finding=f"high pain levels ({avg_pain:.1f}/10)"
            )
        if latest - avg_pain >= config.pain_spike_delta:
            evaluation.add(
                PAIN_RULE,
                ModificationType.REST,
                Priority.HIGH,
                MODIFICATION_TEXT["add_rest"],
                f"Latest pain level ({latest}/10) is {latest - avg_pain:.1f} points "
                f"above the recent average ({avg_pain:.1f}/10)",
                finding=f"rising pain (latest {latest}/10)"
            )
        if PAIN_RULE in evaluation.fired:
            self._emit(RULE_FIRED, evaluation.exercise_id, PAIN_RULE, {
                "average_pain": round(avg_pain, 2),
                "latest_pain": latest
            })

    def _apply_difficulty_rules(self, evaluation: _Evaluation, config: AdaptationConfig) -> None:
        if evaluation.should_replace:
            # A replace signal supersedes incremental load changes
            for rule in (DIFFICULTY_HIGH_RULE, DIFFICULTY_LOW_RULE):
                self._emit(RULE_SKIPPED, evaluation.exercise_id, rule, {
                    "reason": "replace_signal"
                })
            return

        records = evaluation.records
        avg_difficulty = mean(r.difficulty_rating for r in records)

        if avg_difficulty >= config.hard_difficulty_average:
            partial = sum(1 for r in records if r.completion_status == CompletionStatus.PARTIAL)
            if partial * 2 > len(records):
                evaluation.should_replace = True
                evaluation.add(
                    DIFFICULTY_HIGH_RULE,
                    ModificationType.ALTERNATIVE,
                    Priority.HIGH,
                    MODIFICATION_TEXT["replace_easier"],
                    f"Exercise is very difficult ({avg_difficulty:.1f}/10) and was only "
                    f"partially completed in {partial} of {len(records)} sessions",
                    finding=f"high difficulty ({avg_difficulty:.1f}/10) with incomplete sessions"
                )
            else:
                evaluation.add(
                    DIFFICULTY_HIGH_RULE,
                    ModificationType.DURATION,
                    Priority.HIGH,
                    MODIFICATION_TEXT["reduce_duration"],
                    f"Exercise is very difficult ({avg_difficulty:.1f}/10)",
                    finding=f"high difficulty ({avg_difficulty:.1f}/10)"
                )
            self._emit(RULE_FIRED, evaluation.exercise_id, DIFFICULTY_HIGH_RULE, {
                "average_difficulty": round(avg_difficulty, 2),
                "partial_sessions": partial,
                "should_replace": evaluation.should_replace
            })
            return

        if avg_difficulty > config.easy_difficulty_average:
            return
        if PAIN_RULE in evaluation.fired:
            self._emit(RULE_SKIPPED, evaluation.exercise_id, DIFFICULTY_LOW_RULE, {
                "reason": "pain_rule_fired"
            })
            return
        if not all(r.completion_status == CompletionStatus.COMPLETED for r in records):
            return

        evaluation.add(
            DIFFICULTY_LOW_RULE,
            ModificationType.REPS,
            Priority.MEDIUM,
            MODIFICATION_TEXT["increase_reps"],
            f"Consistently rated too easy ({avg_difficulty:.1f}/10 over "
            f"{len(records)} completed sessions)",
            finding=f"low difficulty ({avg_difficulty:.1f}/10)"
        )
        weights = [r.weight_used for r in records if r.weight_used is not None]
        if weights:
            evaluation.add(
                DIFFICULTY_LOW_RULE,
                ModificationType.WEIGHT,
                Priority.MEDIUM,
                MODIFICATION_TEXT["increase_weight"],
                f"Consistently rated too easy at {weights[-1]:g} weight"
            )
        self._emit(RULE_FIRED, evaluation.exercise_id, DIFFICULTY_LOW_RULE, {
            "average_difficulty": round(avg_difficulty, 2)
        })

    def _apply_enjoyment_rule(self, evaluation: _Evaluation, config: AdaptationConfig) -> None:
        if any(rule in evaluation.fired for rule in LOAD_RULES):
            self._emit(RULE_SKIPPED, evaluation.exercise_id, ENJOYMENT_RULE, {
                "reason": "load_rule_fired"
            })
            return

        ratings = [r.enjoyment_rating for r in evaluation.records if r.enjoyment_rating is not None]
        if not ratings:
            self._emit(RULE_SKIPPED, evaluation.exercise_id, ENJOYMENT_RULE, {
                "reason": NO_DATA, "field": "enjoyment_rating"
            })
            return
        if len(ratings) < config.low_enjoyment_min_records:
            self._emit(RULE_SKIPPED, evaluation.exercise_id, ENJOYMENT_RULE, {
                "reason": NOT_ENOUGH_RECORDS, "available": len(ratings)
            })
            return

        avg_enjoyment = mean(ratings)
        if avg_enjoyment > config.low_enjoyment_average:
            return

        persistent = all(r <= config.persistent_low_enjoyment for r in ratings)
        evaluation.add(
            ENJOYMENT_RULE,
            ModificationType.ALTERNATIVE,
            Priority.LOW,
            MODIFICATION_TEXT["try_alternative"],
            f"Low engagement (average enjoyment {avg_enjoyment:.1f}/10)",
            finding=f"low enjoyment ({avg_enjoyment:.1f}/10)"
        )
        if persistent:
            evaluation.should_replace = True
        self._emit(RULE_FIRED, evaluation.exercise_id, ENJOYMENT_RULE, {
            "average_enjoyment": round(avg_enjoyment, 2),
            "should_replace": persistent
        })

    def _apply_effectiveness_rule(self, evaluation: _Evaluation, config: AdaptationConfig) -> None:
        values = [
            r.perceived_effectiveness for r in evaluation.records
            if r.perceived_effectiveness is not None
        ]
        if not values:
            self._emit(RULE_SKIPPED, evaluation.exercise_id, EFFECTIVENESS_RULE, {
                "reason": NO_DATA, "field": "perceived_effectiveness"
            })
            return
        if len(values) < config.min_effectiveness_records:
            self._emit(RULE_SKIPPED, evaluation.exercise_id, EFFECTIVENESS_RULE, {
                "reason": NOT_ENOUGH_RECORDS, "available": len(values)
            })
            return

        non_increasing = all(a >= b for a, b in zip(values, values[1:]))
        if not non_increasing or values[-1] > config.low_effectiveness_level:
            return

        evaluation.add(
            EFFECTIVENESS_RULE,
            ModificationType.ALTERNATIVE,
            Priority.MEDIUM,
            MODIFICATION_TEXT["more_effective"],
            f"Perceived effectiveness has not improved over {len(values)} sessions "
            f"(latest {values[-1]}/10)",
            finding=f"declining effectiveness (latest {values[-1]}/10)"
        )
        self._emit(RULE_FIRED, evaluation.exercise_id, EFFECTIVENESS_RULE, {
            "values": values
        })

    def _apply_modified_completion_rule(self, evaluation: _Evaluation, config: AdaptationConfig) -> None:
        records = evaluation.records
        modified = [r for r in records if r.completion_status == CompletionStatus.MODIFIED]
        if len(modified) * 2 <= len(records):
            return

        # Newest first so that ties go to the most recent change
        texts = [
            r.modifications.strip() for r in reversed(modified)
            if r.modifications and r.modifications.strip()
        ]
        summary = f"Modified in {len(modified)} of {len(records)} sessions"
        if texts:
            common, _ = Counter(texts).most_common(1)[0]
            description = f"{MODIFICATION_TEXT['formalize_change']}: {common}"
            reason = f'{summary}; most common change: "{common}"'
        else:
            description = MODIFICATION_TEXT["review_changes"]
            reason = summary

        evaluation.add(
            MODIFIED_COMPLETION_RULE,
            ModificationType.ALTERNATIVE,
            Priority.MEDIUM,
            description,
            reason,
            finding=f"frequent modifications ({len(modified)} of {len(records)} sessions)"
        )
        self._emit(RULE_FIRED, evaluation.exercise_id, MODIFIED_COMPLETION_RULE, {
            "modified_sessions": len(modified)
        })

    def _build_reasoning(self, evaluation: _Evaluation) -> str:
        count = len(evaluation.records)
        sessions = "session" if count == 1 else "sessions"
        summary = ", ".join(evaluation.findings) or "exercise appears suitable"
        return f"Based on {count} feedback {sessions}: {summary}"

    def _exercise_name(self, exercise_id: str, items: List[FeedbackInput]) -> Optional[str]:
        """Latest exercise name carried by the window, even by skipped records."""
        for item in reversed(items):
            if isinstance(item, FeedbackRecord):
                record_id, name = item.exercise_id, item.exercise_name
            elif isinstance(item, Mapping):
                record_id, name = item.get("exercise_id"), item.get("exercise_name")
            else:
                continue
            if record_id == exercise_id and isinstance(name, str) and name:
                return name
        return None

    def _insufficient_data(self, exercise_id: str, exercise_name: Optional[str] = None) -> AdaptationRecommendation:
        return AdaptationRecommendation(
            exercise_id=exercise_id,
            exercise_name=exercise_name or exercise_id,
            modifications=[],
            should_replace=False,
            reasoning=INSUFFICIENT_DATA
        )

    def _emit(
        self,
        event: str,
        exercise_id: str,
        rule_name: Optional[str] = None,
        details: Optional[dict] = None
    ) -> None:
        """Send a diagnostic event to the log and the optional sink."""
        diagnostic = DiagnosticEvent(
            event=event,
            exercise_id=exercise_id,
            rule_name=rule_name,
            details=details or {}
        )
        logger.debug("Adaptation diagnostic", extra=diagnostic.model_dump())
        if self._diagnostics is None:
            return
        try:
            self._diagnostics(diagnostic)
        except Exception as e:
            logger.warning("Diagnostic sink failed", extra={
                "exercise_id": exercise_id,
                "error": str(e),
                "error_type": e.__class__.__name__
            })
