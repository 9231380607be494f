"""
Selection of substitute exercises for replace recommendations.

A substitute must work at least one of the original's target muscles and
sit at the original's level or one step easier, so a replacement triggered
by pain or difficulty never escalates the plan.
"""
from typing import Iterable, List, Mapping, Optional, Set, Union

from recovery.models.exercise import Exercise

Catalog = Union[Mapping[str, Exercise], Iterable[Exercise]]

def _muscles(exercise: Exercise) -> Set[str]:
    return {m.strip().lower() for m in exercise.target_muscles if m and m.strip()}

def _catalog_entries(catalog: Optional[Catalog]) -> List[Exercise]:
    if not catalog:
        return []
    if isinstance(catalog, Mapping):
        return list(catalog.values())
    return list(catalog)

def is_level_compatible(original: Exercise, candidate: Exercise) -> bool:
    """Check if candidate's level is the same as or one step below the original's."""
    step = original.level.rank - candidate.level.rank
    return 0 <= step <= 1

def muscle_overlap(original: Exercise, candidate: Exercise) -> int:
    """Number of target muscles the two exercises share (case-insensitive)."""
    return len(_muscles(original) & _muscles(candidate))

def get_exercise_alternatives(
    exercise: Exercise,
    catalog: Optional[Catalog],
    limit: Optional[int] = 3
) -> List[Exercise]:
    """
    Rank catalog exercises that can substitute for the given one.

    Args:
        exercise: Exercise being replaced
        catalog: Mapping of exercise ID to Exercise, or an iterable of exercises
        limit: Maximum number of alternatives to return (None for all)

    Returns:
        Matching exercises, best first: highest muscle overlap, then lowest
        difficulty, then exercise ID.
    """
    candidates = []
    for candidate in _catalog_entries(catalog):
        if candidate.id == exercise.id:
            continue
        overlap = muscle_overlap(exercise, candidate)
        if overlap == 0 or not is_level_compatible(exercise, candidate):
            continue
        candidates.append((overlap, candidate))

    candidates.sort(key=lambda item: (-item[0], item[1].difficulty, item[1].id))
    ranked = [candidate for _, candidate in candidates]
    return ranked[:limit] if limit is not None else ranked

def select_alternative(exercise: Exercise, catalog: Optional[Catalog]) -> Optional[Exercise]:
    """
    Pick the best substitute for an exercise.

    Returns None when the catalog is empty or nothing matches; callers treat
    that as "replacement recommended, no specific suggestion available".
    """
    alternatives = get_exercise_alternatives(exercise, catalog, limit=1)
    return alternatives[0] if alternatives else None
