"""
Entry Log - the single owner of the ordered conversation log.

Readers get deep copies; all writes go through the methods here, and the
pipeline is the only writer.
"""

from typing import Any, Iterable, List, Optional, Tuple

from ..core.errors import EntryNotFoundError
from ..models.entries import ConversationEntry, EntryRole

Snapshot = Tuple[ConversationEntry, ...]


class EntryLog:
    """Ordered log of conversation entries."""

    def __init__(self, entries: Optional[Iterable[ConversationEntry]] = None):
        self._entries: List[ConversationEntry] = [e.model_copy(deep=True) for e in entries or []]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Snapshot:
        """Read-only copy of the current log."""
        return self.snapshot()

    def snapshot(self) -> Snapshot:
        return tuple(e.model_copy(deep=True) for e in self._entries)

    def restore(self, snapshot: Snapshot) -> None:
        """Replace the whole log with a previously captured snapshot."""
        self._entries = [e.model_copy(deep=True) for e in snapshot]

    def _index(self, entry_id: str) -> int:
        for i, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return i
        raise EntryNotFoundError(f"Entry not found: {entry_id}")

    def get(self, entry_id: str) -> ConversationEntry:
        return self._entries[self._index(entry_id)].model_copy(deep=True)

    def append(self, entry: ConversationEntry) -> ConversationEntry:
        self._entries.append(entry.model_copy(deep=True))
        return entry

    def update(self, entry_id: str, **changes: Any) -> ConversationEntry:
        """Replace fields of an entry in place, keeping its position."""
        i = self._index(entry_id)
        self._entries[i] = self._entries[i].model_copy(update=changes)
        return self._entries[i].model_copy(deep=True)

    def remove(self, entry_ids: Iterable[str]) -> None:
        ids = set(entry_ids)
        self._entries = [e for e in self._entries if e.id not in ids]

    def responder_for(self, submitter_id: str) -> Optional[ConversationEntry]:
        """
        Find the reply to a submitter entry, by ``replies_to`` first and by
        adjacency for entries that predate the explicit link.
        """
        for entry in self._entries:
            if entry.role == EntryRole.RESPONDER and entry.replies_to == submitter_id:
                return entry.model_copy(deep=True)
        i = self._index(submitter_id)
        if i + 1 < len(self._entries):
            following = self._entries[i + 1]
            if following.role == EntryRole.RESPONDER and following.replies_to is None:
                return following.model_copy(deep=True)
        return None

    def attachment_refs(self) -> set:
        return {e.attachment_ref for e in self._entries if e.attachment_ref}
