"""
Constants and shared text for adaptation services.
"""
from recovery.models.recommendation import ModificationType

INSUFFICIENT_DATA = "insufficient data"

# Rule names
PAIN_RULE = "pain_escalation"
DIFFICULTY_HIGH_RULE = "difficulty_too_high"
DIFFICULTY_LOW_RULE = "difficulty_too_low"
ENJOYMENT_RULE = "low_enjoyment"
EFFECTIVENESS_RULE = "declining_effectiveness"
MODIFIED_COMPLETION_RULE = "modified_completion"

# Diagnostic event names
RECORD_SKIPPED = "record_skipped"
RULE_SKIPPED = "rule_skipped"
RULE_FIRED = "rule_fired"
INCONSISTENT_WINDOW = "inconsistent_window"
EVALUATION_FAILED = "evaluation_failed"

# Reasons attached to skipped records and rules
MISSING_REQUIRED_FIELD = "missing_required_field"
INVALID_RECORD = "invalid_record"
EXERCISE_MISMATCH = "exercise_mismatch"
NO_DATA = "no_data"
NOT_ENOUGH_RECORDS = "not_enough_records"

REQUIRED_FEEDBACK_FIELDS = ("pain_level", "difficulty_rating")

# Modification types that add load to an exercise
LOAD_INCREASING_TYPES = {ModificationType.REPS, ModificationType.WEIGHT}

MODIFICATION_TEXT = {
    "reduce_intensity": "Reduce exercise intensity by 30-40%",
    "add_rest": "Take 2-3 days rest before attempting this exercise again",
    "replace_gentler": "Replace with a gentler alternative exercise",
    "reduce_duration": "Reduce exercise duration and repetitions by 25-30%",
    "replace_easier": "Replace with an easier variation of this exercise",
    "increase_reps": "Increase repetitions by 2-3 per set",
    "increase_weight": "Increase weight by 5-10%",
    "try_alternative": "Try a different exercise targeting the same muscles",
    "more_effective": "Consider a more effective alternative",
    "formalize_change": "Make the change you have been applying part of the plan",
    "review_changes": "Review the changes made during recent sessions",
}

WORKING_WELL_ANALYSIS = (
    "Great job! Your {count} exercises are working well for you. Keep up the "
    "consistent effort and continue tracking your progress."
)

ADAPTATIONS_FOUND_ANALYSIS = (
    "Analyzed your progress across {count} exercises and identified {found} "
    "opportunities for optimization. These adjustments will help you progress "
    "safely while staying comfortable."
)
