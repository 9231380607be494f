"""
Feedback analytics across exercises.

This module summarises feedback history into per-exercise trends and a
user-level analysis with a 0-100 progress score.
"""
from datetime import datetime, timedelta, timezone
from statistics import mean
from typing import Dict, List, Optional, Sequence

from aws_lambda_powertools import Logger

from recovery.models.feedback import (
    FeedbackAnalysis,
    FeedbackRecord,
    FeedbackTrend,
    TrendDirection
)
from recovery.services.utils import as_utc, sort_chronologically

logger = Logger()

TREND_THRESHOLD = 0.5
RECENT_TREND_SESSIONS = 3
ANALYSIS_SESSIONS = 10
MIN_EFFECTIVENESS_SESSIONS = 2

def _group_by_exercise(records: Sequence[FeedbackRecord]) -> Dict[str, List[FeedbackRecord]]:
    groups: Dict[str, List[FeedbackRecord]] = {}
    for record in sort_chronologically(records):
        groups.setdefault(record.exercise_id, []).append(record)
    return groups

def calculate_feedback_trends(records: Sequence[FeedbackRecord]) -> List[FeedbackTrend]:
    """
    Calculate pain and difficulty trends for each exercise.

    Args:
        records: Feedback records for any number of exercises

    Returns:
        One FeedbackTrend per exercise, most sessions first. The trend
        compares the last three sessions against everything before them.
    """
    trends = []
    for exercise_id, group in _group_by_exercise(records).items():
        recent_count = min(RECENT_TREND_SESSIONS, len(group))
        recent = group[-recent_count:]
        older = group[:-recent_count]

        trend = TrendDirection.STABLE
        if older:
            improvement = mean(r.pain_level for r in older) - mean(r.pain_level for r in recent)
            if improvement > TREND_THRESHOLD:
                trend = TrendDirection.IMPROVING
            elif improvement < -TREND_THRESHOLD:
                trend = TrendDirection.DECLINING

        trends.append(FeedbackTrend(
            exercise_id=exercise_id,
            exercise_name=group[-1].exercise_name,
            average_pain_level=round(mean(r.pain_level for r in group), 1),
            average_difficulty_rating=round(mean(r.difficulty_rating for r in group), 1),
            total_sessions=len(group),
            improvement_trend=trend,
            last_feedback_date=group[-1].created_at
        ))

    # sorted() is stable, so equal counts keep first-feedback order
    return sorted(trends, key=lambda t: t.total_sessions, reverse=True)

def _overall_pain_trend(records: List[FeedbackRecord]) -> str:
    """Compare the newest sessions against the oldest ones, at most ten each."""
    window = max(1, min(ANALYSIS_SESSIONS, len(records) // 2))
    recent_avg = mean(r.pain_level for r in records[-window:])
    older_avg = mean(r.pain_level for r in records[:window])
    if older_avg - recent_avg > TREND_THRESHOLD:
        return "improving"
    if recent_avg - older_avg > TREND_THRESHOLD:
        return "worsening"
    return "stable"

def _effectiveness_ranking(records: List[FeedbackRecord]) -> List[str]:
    scores: Dict[str, List[int]] = {}
    names: Dict[str, str] = {}
    for record in records:
        if record.perceived_effectiveness is None:
            continue
        scores.setdefault(record.exercise_id, []).append(record.perceived_effectiveness)
        names[record.exercise_id] = record.exercise_name

    averages = [
        (mean(values), names[exercise_id])
        for exercise_id, values in scores.items()
        if len(values) >= MIN_EFFECTIVENESS_SESSIONS
    ]
    return [name for _, name in sorted(averages, key=lambda item: item[0], reverse=True)]

def generate_feedback_analysis(
    user_id: str,
    records: Sequence[FeedbackRecord],
    days: int = 30,
    now: Optional[datetime] = None
) -> FeedbackAnalysis:
    """
    Generate a user-level feedback analysis.

    Args:
        user_id: User the records belong to
        records: Feedback records across the user's exercises
        days: Number of days of feedback to analyse
        now: Optional reference time, defaults to the current UTC time

    Returns:
        FeedbackAnalysis with averages, effectiveness ranking, general
        recommendations and a progress score between 0 and 100
    """
    now = as_utc(now) if now else datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    recent = sort_chronologically(r for r in records if as_utc(r.created_at) >= cutoff)

    if not recent:
        return FeedbackAnalysis(
            user_id=user_id,
            overall_pain_trend="stable",
            average_pain_level=0,
            average_difficulty_rating=0,
            most_effective_exercises=[],
            least_effective_exercises=[],
            recommended_modifications=[],
            progress_score=50,
            analysis_date=now
        )

    avg_pain = mean(r.pain_level for r in recent)
    avg_difficulty = mean(r.difficulty_rating for r in recent)
    pain_trend = _overall_pain_trend(recent)

    ranking = _effectiveness_ranking(recent)

    recommended = []
    high_pain = sum(1 for r in recent if r.pain_level >= 7)
    high_difficulty = sum(1 for r in recent if r.difficulty_rating >= 8)
    if high_pain > len(recent) * 0.2:
        recommended.append("Consider reducing intensity of exercises causing high pain")
    if high_difficulty > len(recent) * 0.3:
        recommended.append("Some exercises may be too challenging - try easier variations")
    if avg_pain > 6:
        recommended.append("Focus on pain management and gentle movements")

    progress_score = 50
    if pain_trend == "improving":
        progress_score += 20
    elif pain_trend == "worsening":
        progress_score -= 20
    if avg_pain <= 4:
        progress_score += 15
    elif avg_pain >= 7:
        progress_score -= 15
    trends = calculate_feedback_trends(recent)
    improving = sum(1 for t in trends if t.improvement_trend == TrendDirection.IMPROVING)
    if improving > len(trends) / 2:
        progress_score += 15
    progress_score = max(0, min(100, progress_score))

    logger.info("Feedback analysis generated", extra={
        "user_id": user_id,
        "records_analyzed": len(recent),
        "pain_trend": pain_trend,
        "progress_score": progress_score
    })

    return FeedbackAnalysis(
        user_id=user_id,
        overall_pain_trend=pain_trend,
        average_pain_level=round(avg_pain, 1),
        average_difficulty_rating=round(avg_difficulty, 1),
        most_effective_exercises=ranking[:3],
        least_effective_exercises=ranking[-3:][::-1],
        recommended_modifications=recommended,
        progress_score=progress_score,
        analysis_date=now
    )
