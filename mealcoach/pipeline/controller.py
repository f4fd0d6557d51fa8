"""
Conversation Pipeline - submissions, duplicate holds and edit/replay.

Flow for a new submission: duplicate check, optional image description,
streamed reply into a fresh responder entry, parse, then recompute and
upsert the day's summary. An edit rewrites a submitter entry in place and
replays it into the same responder entry. Any failure while talking to the
provider restores the log to the snapshot taken before the operation.

Only one send or edit runs at a time; a second one is rejected, not queued.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from ..core.errors import (
    InvalidEditError,
    PipelineBusyError,
    ProviderError,
    StorageQuotaExceeded,
)
from ..llm.vision import ImageDescriber
from ..models.entries import Attachment, ConversationEntry, EntryRole
from ..models.profile import UserProfile
from ..models.summary import DailySummary
from ..storage.tracker_storage import TrackerStorage
from .aggregator import days_in_log, entry_day, recompute
from .attachments import AttachmentRegistry
from .duplicates import DEFAULT_THRESHOLD, DEFAULT_WINDOW, find_duplicate, minutes_since
from .entry_log import EntryLog, Snapshot
from .parser import parse_response
from .prompts import build_system_instruction
from .retry import with_retry
from .transport import SessionTransport, TextCallback, emit_text, to_provider_error

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    EDITING = "editing"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


@dataclass
class PipelineError:
    """User-visible, dismissible error."""
    kind: str  # "provider" or "storage"
    message: str


@dataclass
class PendingSubmission:
    """A submission held until the user confirms it is not a duplicate."""
    text: str
    duplicate_of: ConversationEntry


@dataclass
class SubmissionResult:
    status: str  # "completed" or "duplicate"
    submitter: Optional[ConversationEntry] = None
    responder: Optional[ConversationEntry] = None
    summary: Optional[DailySummary] = None
    duplicate_of: Optional[ConversationEntry] = None
    minutes_ago: Optional[int] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationPipeline:
    """
    Owns the entry log and coordinates transport, parser and aggregator.
    """

    def __init__(
        self,
        transport: SessionTransport,
        storage: TrackerStorage,
        describer: Optional[ImageDescriber] = None,
        entries: Optional[Iterable[ConversationEntry]] = None,
        duplicate_window: timedelta = DEFAULT_WINDOW,
        duplicate_threshold: float = DEFAULT_THRESHOLD,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        backoff_multiplier: float = 2.0,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.transport = transport
        self.storage = storage
        self.describer = describer
        self.duplicate_window = duplicate_window
        self.duplicate_threshold = duplicate_threshold
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.backoff_multiplier = backoff_multiplier
        self.tz = tz
        self.clock = clock

        self.log = EntryLog(entries)
        self.attachments = AttachmentRegistry()
        self.profile = UserProfile()
        self.state = PipelineState.IDLE
        self.editing_entry_id: Optional[str] = None
        self.pending_duplicate: Optional[PendingSubmission] = None
        self.last_error: Optional[PipelineError] = None

    # ------------------------------------------------------------------ reads

    @property
    def entries(self) -> Snapshot:
        return self.log.entries

    @property
    def busy(self) -> bool:
        return self.state != PipelineState.IDLE or self.transport.in_flight

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    def summary_for(self, day: date) -> DailySummary:
        """Summary of a day computed from the live log, without persisting it."""
        return recompute(self.log.entries, self.profile.daily_targets, day, self.tz)

    async def history(self, period: str = "7days") -> List[DailySummary]:
        return await self.storage.list_summaries(period, today=self.today())

    def dismiss_error(self) -> None:
        self.last_error = None

    # -------------------------------------------------------------- lifecycle

    async def load(self) -> None:
        """Cold load: read the profile and bring stored summaries up to date."""
        self.profile = await self.storage.load_profile()
        self.transport.configure(build_system_instruction(self.profile))
        await self._persist_days(days_in_log(self.log.entries, self.tz))
        logger.info(f"Pipeline loaded with {len(self.log)} entries")

    async def update_profile(self, profile: UserProfile) -> UserProfile:
        """
        Persist a new profile. Future sends use a session built from it;
        stored summaries keep the targets they were computed with.
        """
        try:
            await self.storage.save_profile(profile)
        except StorageQuotaExceeded as e:
            self.last_error = PipelineError("storage", e.message)
            raise
        self.profile = profile
        self.transport.configure(build_system_instruction(profile))
        return profile

    # ------------------------------------------------------------ submissions

    async def submit(
        self,
        text: str,
        image: Optional[bytes] = None,
        media_type: str = "image/jpeg",
        on_partial: Optional[TextCallback] = None,
        force: bool = False,
    ) -> SubmissionResult:
        """
        Submit a new message, optionally with an image.

        Args:
            text: What the user typed
            image: Raw image bytes, described by the vision provider first
            media_type: MIME type of the image
            on_partial: Receives the cumulative reply while it streams
            force: Skip the duplicate check

        Returns:
            SubmissionResult with status "completed", or "duplicate" when the
            submission is held for confirmation

        Raises:
            PipelineBusyError: If a send or edit is in flight
            ProviderError: If the provider fails; the log is left unchanged
            StorageQuotaExceeded: If the day's summary could not be saved
        """
        text = text.strip()
        if not text and image is None:
            raise ValueError("Nothing to submit")
        if self.busy:
            raise PipelineBusyError("Wait for the current reply to finish")

        # A new submission supersedes any hold the user never answered
        self.pending_duplicate = None
        if not force:
            now = self.clock()
            match = find_duplicate(
                text,
                image is not None,
                self.log.entries,
                window=self.duplicate_window,
                threshold=self.duplicate_threshold,
                now=now,
            )
            if match is not None:
                self.pending_duplicate = PendingSubmission(text=text, duplicate_of=match)
                return SubmissionResult(
                    status="duplicate",
                    duplicate_of=match,
                    minutes_ago=minutes_since(match, now),
                )

        return await self._send_new(text, image, media_type, on_partial)

    async def confirm_duplicate(self, on_partial: Optional[TextCallback] = None) -> SubmissionResult:
        """Send the held submission anyway."""
        if self.pending_duplicate is None:
            raise ValueError("No submission is waiting for confirmation")
        if self.busy:
            raise PipelineBusyError("Wait for the current reply to finish")
        pending, self.pending_duplicate = self.pending_duplicate, None
        return await self._send_new(pending.text, None, "", on_partial)

    def cancel_duplicate(self) -> Optional[PendingSubmission]:
        """Drop the held submission."""
        pending, self.pending_duplicate = self.pending_duplicate, None
        return pending

    async def _send_new(
        self,
        text: str,
        image: Optional[bytes],
        media_type: str,
        on_partial: Optional[TextCallback],
    ) -> SubmissionResult:
        self.state = PipelineState.SENDING
        snapshot = self.log.snapshot()
        try:
            try:
                message = text
                attachment_ref = None
                if image is not None:
                    attachment = self.attachments.add(image, media_type)
                    attachment_ref = attachment.ref
                    message = await self._describe(attachment, text)

                now = self.clock()
                submitter = self.log.append(ConversationEntry(
                    role=EntryRole.SUBMITTER,
                    content=text,
                    attachment_ref=attachment_ref,
                    timestamp=now,
                ))
                responder = self.log.append(ConversationEntry(
                    role=EntryRole.RESPONDER,
                    replies_to=submitter.id,
                    timestamp=now,
                ))
                reply = await self._stream_into(responder.id, message, on_partial)
                responder = self._apply_reply(responder.id, reply)
            except Exception as e:
                self._roll_back(snapshot, e)
                raise

            summaries = await self._persist_days([entry_day(responder, self.tz)])
        finally:
            self.state = PipelineState.IDLE

        return SubmissionResult(
            status="completed",
            submitter=self.log.get(submitter.id),
            responder=responder,
            summary=summaries.get(entry_day(responder, self.tz)),
        )

    # ------------------------------------------------------------------ edits

    async def edit(
        self,
        entry_id: str,
        new_content: str,
        on_partial: Optional[TextCallback] = None,
    ) -> SubmissionResult:
        """
        Replace a submitter entry's text and replay it.

        The paired responder entry stays in place and is refilled by the
        new reply. If the provider fails, the log is restored exactly.

        Raises:
            EntryNotFoundError: If no entry has this id
            InvalidEditError: If the entry is not an answered submitter entry
            PipelineBusyError: If a send or edit is in flight
            ProviderError: If the provider fails
        """
        new_content = new_content.strip()
        if not new_content:
            raise InvalidEditError("Edited content cannot be empty")
        target = self.log.get(entry_id)
        if target.role != EntryRole.SUBMITTER:
            raise InvalidEditError("Only submitted messages can be edited")
        responder = self.log.responder_for(entry_id)
        if responder is None:
            raise InvalidEditError("This message has no reply to replay")
        if self.busy:
            raise PipelineBusyError("Wait for the current reply to finish")

        self.state = PipelineState.EDITING
        self.editing_entry_id = entry_id
        snapshot = self.log.snapshot()
        old_day = entry_day(responder, self.tz)
        try:
            try:
                now = self.clock()
                self.log.update(entry_id, content=new_content, timestamp=now)
                self.log.update(responder.id, content="", structured_payload=None, timestamp=now)
                message = self._message_for(new_content, target.attachment_ref)
                reply = await self._stream_into(responder.id, message, on_partial)
                responder = self._apply_reply(responder.id, reply)
            except Exception as e:
                self._roll_back(snapshot, e)
                raise

            new_day = entry_day(responder, self.tz)
            summaries = await self._persist_days({old_day, new_day})
        finally:
            self.state = PipelineState.IDLE
            self.editing_entry_id = None

        logger.info("Entry edited and replayed", extra={"extra_fields": {"entry_id": entry_id}})
        return SubmissionResult(
            status="completed",
            submitter=self.log.get(entry_id),
            responder=responder,
            summary=summaries.get(new_day),
        )

    # ---------------------------------------------------------------- helpers

    async def _describe(self, attachment: Attachment, text: str) -> str:
        if self.describer is None:
            raise ProviderError("Image description is not configured", retryable=False)

        async def describe() -> str:
            try:
                return await self.describer.describe(attachment.data, attachment.media_type)
            except Exception as e:
                error = to_provider_error(e)
                if error is e:
                    raise
                raise error from e

        attachment.description = await with_retry(
            describe, self.max_retries, self.retry_delay, self.backoff_multiplier
        )
        return self._message_for(text, attachment.ref)

    def _message_for(self, text: str, attachment_ref: Optional[str]) -> str:
        """Text sent to the provider: the typed text plus the photo description, if any."""
        attachment = self.attachments.get(attachment_ref) if attachment_ref else None
        if attachment is None or not attachment.description:
            return text
        if text:
            return f"{text}\n\n[Photo: {attachment.description}]"
        return f"[Photo: {attachment.description}]"

    async def _stream_into(self, responder_id: str, message: str,
                           on_partial: Optional[TextCallback]) -> str:
        async def handle_partial(text: str) -> None:
            self.log.update(responder_id, content=text)
            await emit_text(on_partial, text)

        return await with_retry(
            lambda: self.transport.send(message, on_partial=handle_partial),
            self.max_retries,
            self.retry_delay,
            self.backoff_multiplier,
        )

    def _apply_reply(self, responder_id: str, reply: str) -> ConversationEntry:
        parsed = parse_response(reply)
        return self.log.update(
            responder_id, content=parsed.remainder, structured_payload=parsed.payload
        )

    def _roll_back(self, snapshot: Snapshot, error: Exception) -> None:
        self.state = PipelineState.FAILED
        self.log.restore(snapshot)
        self.attachments.release_unreferenced(self.log.attachment_refs())
        self.state = PipelineState.ROLLED_BACK
        if isinstance(error, ProviderError):
            self.last_error = PipelineError("provider", f"Failed to get response: {error.message}")
        logger.warning(
            f"Rolled back after failure: {error}",
            extra={"extra_fields": {"entries": len(self.log), "error": str(error)}}
        )

    async def _persist_days(self, days: Iterable[date]) -> Dict[date, DailySummary]:
        """Recompute and upsert the given days. Nothing is written for an empty log."""
        if len(self.log) == 0:
            return {}
        entries = self.log.entries
        summaries: Dict[date, DailySummary] = {}
        for day in sorted(set(days)):
            summary = recompute(entries, self.profile.daily_targets, day, self.tz)
            try:
                await self.storage.upsert_summary(summary)
            except StorageQuotaExceeded as e:
                self.last_error = PipelineError("storage", e.message)
                raise
            summaries[day] = summary
        return summaries
