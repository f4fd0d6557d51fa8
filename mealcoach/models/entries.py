"""
Conversation Entry Models - one exchange turn and the structured records
extracted from provider replies.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

DEFAULT_ACTIVITY_EMOJI = "🏃"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EntryRole(str, Enum):
    """Who authored an entry."""
    SUBMITTER = "user"
    RESPONDER = "assistant"


class NutritionRecord(BaseModel):
    """One food item from a nutrition breakdown."""
    name: str = ""
    calories: float = 0.0
    protein_g: float = 0.0
    fat_g: float = 0.0
    note: str = ""
    healthy: bool = True


class ActivityRecord(BaseModel):
    """One physical activity from an activity breakdown."""
    name: str = ""
    duration_minutes: float = 0.0
    calories_burned: float = 0.0
    note: str = ""
    emoji: str = DEFAULT_ACTIVITY_EMOJI


class NutritionRecords(BaseModel):
    kind: Literal["nutrition"] = "nutrition"
    records: List[NutritionRecord] = Field(default_factory=list)


class ActivityRecords(BaseModel):
    kind: Literal["activity"] = "activity"
    records: List[ActivityRecord] = Field(default_factory=list)


StructuredPayload = Annotated[
    Union[NutritionRecords, ActivityRecords],
    Field(discriminator="kind"),
]


class Attachment(BaseModel):
    """An uploaded image held by the attachment registry."""
    ref: str = Field(default_factory=_new_id)
    media_type: str = "image/jpeg"
    data: bytes = b""
    description: str = ""


class ConversationEntry(BaseModel):
    """
    One turn of the conversation.

    A responder entry is always appended right after the submitter entry it
    answers and also records that entry's id in ``replies_to``.
    """
    id: str = Field(default_factory=_new_id)
    role: EntryRole
    content: str = ""
    attachment_ref: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)
    structured_payload: Optional[StructuredPayload] = None
    replies_to: Optional[str] = None

    @property
    def nutrition(self) -> List[NutritionRecord]:
        if isinstance(self.structured_payload, NutritionRecords):
            return self.structured_payload.records
        return []

    @property
    def activities(self) -> List[ActivityRecord]:
        if isinstance(self.structured_payload, ActivityRecords):
            return self.structured_payload.records
        return []
