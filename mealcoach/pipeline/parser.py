"""
Structured-Response Parser.

A coach reply starts with a fenced ```json block holding an array of
records, followed by prose. ``parse_response`` splits the two, decides
whether the records describe food or activity, and normalizes every field.
It is a pure function: the same text always gives the same result.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.errors import ParseFailure
from ..core.logging_config import truncate_large_data
from ..models.entries import (
    ActivityRecord,
    ActivityRecords,
    DEFAULT_ACTIVITY_EMOJI,
    NutritionRecord,
    NutritionRecords,
)

logger = logging.getLogger(__name__)

BLOCK_PATTERN = re.compile(r"```json[ \t]*\r?\n(.*?)\r?\n?[ \t]*```", re.DOTALL | re.IGNORECASE)

NUTRITION_NAME_KEYS = ("ingredient", "food", "item")
NUTRITION_CALORIE_KEYS = ("calories", "kcal", "calories_kcal")
ACTIVITY_NAME_KEYS = ("activity", "exercise")
ACTIVITY_BURN_KEYS = ("caloriesBurned", "calories_burned")

NOTE_KEYS = ("notes", "note")
HEALTHY_KEYS = ("isHealthy", "is_healthy", "healthy")
PROTEIN_KEYS = ("protein", "protein_g")
FAT_KEYS = ("fat", "fat_g")
DURATION_KEYS = ("duration", "durationMinutes", "duration_minutes", "minutes")
EMOJI_KEYS = ("emoji", "icon")

Payload = Union[NutritionRecords, ActivityRecords, None]


@dataclass(frozen=True)
class ParsedResponse:
    """Result of parsing one completed reply."""
    payload: Payload
    remainder: str


def coerce_number(value: Any) -> float:
    """Coerce a provider value to a finite float; anything unusable is 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def _first(record: Dict[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return default


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _has_any(record: Any, keys: Iterable[str]) -> bool:
    return isinstance(record, dict) and any(key in record for key in keys)


def is_nutrition_shaped(record: Any) -> bool:
    return _has_any(record, NUTRITION_NAME_KEYS) and _has_any(record, NUTRITION_CALORIE_KEYS)


def is_activity_shaped(record: Any) -> bool:
    return _has_any(record, ACTIVITY_NAME_KEYS) and _has_any(record, ACTIVITY_BURN_KEYS)


def _to_nutrition(record: Dict[str, Any]) -> NutritionRecord:
    return NutritionRecord(
        name=_text(_first(record, NUTRITION_NAME_KEYS, "")),
        calories=coerce_number(_first(record, NUTRITION_CALORIE_KEYS)),
        protein_g=coerce_number(_first(record, PROTEIN_KEYS)),
        fat_g=coerce_number(_first(record, FAT_KEYS)),
        note=_text(_first(record, NOTE_KEYS, "")),
        healthy=_coerce_bool(_first(record, HEALTHY_KEYS), default=True),
    )


def _to_activity(record: Dict[str, Any]) -> ActivityRecord:
    emoji = _text(_first(record, EMOJI_KEYS, "")).strip()
    return ActivityRecord(
        name=_text(_first(record, ACTIVITY_NAME_KEYS, "")),
        duration_minutes=coerce_number(_first(record, DURATION_KEYS)),
        calories_burned=coerce_number(_first(record, ACTIVITY_BURN_KEYS)),
        note=_text(_first(record, NOTE_KEYS, "")),
        emoji=emoji or DEFAULT_ACTIVITY_EMOJI,
    )


def decode_block(block: str) -> List[Any]:
    """
    Decode a structured block into a list of records.

    Raises:
        ParseFailure: If the block is not valid JSON or not an array
    """
    try:
        data = json.loads(block)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Malformed structured block: {e}") from e
    if not isinstance(data, list):
        raise ParseFailure(f"Structured block is a {type(data).__name__}, expected an array")
    return data


def classify(records: List[Any]) -> Payload:
    """
    Classify decoded records by their keys.

    Nutrition wins whenever any record is nutrition-shaped, and then only
    the nutrition-shaped records are kept. Otherwise the first record
    decides whether the array describes activities.
    """
    if not records:
        return None
    if any(is_nutrition_shaped(r) for r in records):
        return NutritionRecords(records=[_to_nutrition(r) for r in records if is_nutrition_shaped(r)])
    if is_activity_shaped(records[0]):
        return ActivityRecords(records=[_to_activity(r) for r in records if isinstance(r, dict)])
    return None


def parse_response(text: str) -> ParsedResponse:
    """
    Split a completed reply into its structured payload and prose remainder.

    Args:
        text: Full accumulated reply text

    Returns:
        ParsedResponse. If no block is present, or the block is malformed,
        the payload is None and the remainder is the original text.
    """
    match = BLOCK_PATTERN.search(text)
    if match is None:
        return ParsedResponse(payload=None, remainder=text)

    try:
        records = decode_block(match.group(1))
    except ParseFailure as e:
        logger.warning(
            f"Structured block ignored: {e}",
            extra={"extra_fields": {"block": truncate_large_data(match.group(1))}}
        )
        return ParsedResponse(payload=None, remainder=text)

    # Only the first block is decoded, but every block is stripped so the
    # remainder never parses to a payload again.
    remainder = BLOCK_PATTERN.sub("", text).strip()
    return ParsedResponse(payload=classify(records), remainder=remainder)
