"""
Daily Aggregator - recomputes one day's summary from the entry log.
"""

import math
from datetime import date, tzinfo, timezone
from typing import Iterable, List, Set

from ..models.entries import ConversationEntry, EntryRole
from ..models.profile import DailyTargets
from ..models.summary import DailySummary, DailyTotals, GoalsMet

CALORIE_TOLERANCE = 1.1
PROTEIN_TOLERANCE = 0.9
FAT_TOLERANCE = 1.1


def entry_day(entry: ConversationEntry, tz: tzinfo = timezone.utc) -> date:
    """Calendar day an entry falls on in the given timezone."""
    return entry.timestamp.astimezone(tz).date()


def days_in_log(entries: Iterable[ConversationEntry], tz: tzinfo = timezone.utc) -> Set[date]:
    return {entry_day(e, tz) for e in entries if e.role == EntryRole.RESPONDER}


def evaluate_goals(totals: DailyTotals, targets: DailyTargets) -> GoalsMet:
    """Compare totals to targets using the tolerance bands."""
    return GoalsMet(
        calories=(totals.calories_in - totals.calories_burned) <= targets.calories * CALORIE_TOLERANCE,
        protein=totals.protein >= targets.protein * PROTEIN_TOLERANCE,
        fat=totals.fat <= targets.fat * FAT_TOLERANCE,
    )


def recompute(
    entries: Iterable[ConversationEntry],
    targets: DailyTargets,
    day: date,
    tz: tzinfo = timezone.utc,
) -> DailySummary:
    """
    Build the summary for ``day`` from every responder entry on that day.

    Sums use math.fsum so the result does not depend on entry order.
    """
    calories: List[float] = []
    protein: List[float] = []
    fat: List[float] = []
    burned: List[float] = []
    minutes: List[float] = []
    entries_logged = 0

    for entry in entries:
        if entry.role != EntryRole.RESPONDER or entry_day(entry, tz) != day:
            continue
        if entry.nutrition:
            entries_logged += 1
        for item in entry.nutrition:
            calories.append(item.calories)
            protein.append(item.protein_g)
            fat.append(item.fat_g)
        for activity in entry.activities:
            burned.append(activity.calories_burned)
            minutes.append(activity.duration_minutes)

    totals = DailyTotals(
        calories_in=math.fsum(calories),
        protein=math.fsum(protein),
        fat=math.fsum(fat),
        calories_burned=math.fsum(burned),
        minutes_active=math.fsum(minutes),
    )
    return DailySummary(
        date=day,
        totals=totals,
        targets_snapshot=targets.model_copy(),
        entries_logged=entries_logged,
        goals_met=evaluate_goals(totals, targets),
    )
