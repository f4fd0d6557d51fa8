"""
Duplicate Detector - flags a submission that repeats a recent one.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from ..models.entries import ConversationEntry, EntryRole
from .similarity import similarity

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(minutes=5)
DEFAULT_THRESHOLD = 0.85


def find_duplicate(
    candidate_text: str,
    has_attachment: bool,
    recent_entries: Iterable[ConversationEntry],
    window: timedelta = DEFAULT_WINDOW,
    threshold: float = DEFAULT_THRESHOLD,
    now: Optional[datetime] = None,
) -> Optional[ConversationEntry]:
    """
    Find the most recent submitter entry that the candidate probably repeats.

    Entries with an attachment, and candidates with one, are never treated
    as duplicates because the image tells them apart.

    Args:
        candidate_text: Text about to be submitted
        has_attachment: Whether the candidate carries an image
        recent_entries: Log entries to compare against
        window: How far back to look from ``now``
        threshold: Similarity that must be exceeded to count as a match
        now: Reference time, defaults to the current UTC time

    Returns:
        The matching entry, or None
    """
    if has_attachment:
        return None

    now = now or datetime.now(timezone.utc)
    cutoff = now - window
    best: Optional[ConversationEntry] = None

    for entry in recent_entries:
        if entry.role != EntryRole.SUBMITTER or entry.attachment_ref is not None:
            continue
        if not cutoff <= entry.timestamp <= now:
            continue
        if similarity(candidate_text, entry.content) <= threshold:
            continue
        if best is None or entry.timestamp >= best.timestamp:
            best = entry

    if best is not None:
        logger.info(
            "Possible duplicate submission",
            extra={"extra_fields": {"matched_entry": best.id}}
        )
    return best


def minutes_since(entry: ConversationEntry, now: Optional[datetime] = None) -> int:
    """Whole minutes elapsed since the entry was created."""
    now = now or datetime.now(timezone.utc)
    return max(0, int((now - entry.timestamp).total_seconds() // 60))
