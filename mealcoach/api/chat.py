"""
Chat API endpoints - submissions, duplicate confirmation and edits.
Every write endpoint can stream the reply as Server-Sent Events.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..pipeline.controller import ConversationPipeline, SubmissionResult
from ..pipeline.factory import get_pipeline
from ..pipeline.transport import TextCallback
from .errors import HANDLED_ERRORS, error_kind, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/jpg", "image/webp", "image/gif"}

Operation = Callable[[Optional[TextCallback]], Awaitable[SubmissionResult]]


class MessageRequest(BaseModel):
    content: str = Field(..., max_length=4000)
    force: bool = False


class EditRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


def result_event(result: SubmissionResult) -> Dict[str, Any]:
    """Serialize a SubmissionResult for JSON and SSE responses."""
    if result.status == "duplicate":
        return {
            "type": "duplicate",
            "duplicate_of": result.duplicate_of.model_dump(mode="json"),
            "minutes_ago": result.minutes_ago,
        }
    return {
        "type": "done",
        "submitter": result.submitter.model_dump(mode="json"),
        "responder": result.responder.model_dump(mode="json"),
        "summary": result.summary.model_dump(mode="json") if result.summary else None,
    }


async def _run(operation: Operation) -> Dict[str, Any]:
    try:
        result = await operation(None)
    except HANDLED_ERRORS as e:
        raise to_http_exception(e) from e
    return result_event(result)


def _stream(operation: Operation) -> StreamingResponse:
    """Run an operation and relay partials, then the result, as SSE events."""

    async def event_generator():
        queue: asyncio.Queue = asyncio.Queue()

        async def on_partial(text: str) -> None:
            await queue.put({"type": "partial", "content": text})

        async def run() -> None:
            try:
                result = await operation(on_partial)
                await queue.put(result_event(result))
            except HANDLED_ERRORS as e:
                await queue.put({"type": "error", "kind": error_kind(e), "error": str(e)})
            finally:
                await queue.put(None)

        task = asyncio.create_task(run())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
        finally:
            # The operation completes even if the client goes away
            await task

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


async def dispatch(pipeline: ConversationPipeline, operation: Operation, stream: bool):
    if pipeline.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"kind": "busy", "message": "Wait for the current reply to finish"},
        )
    if stream:
        return _stream(operation)
    return await _run(operation)


@router.post("/message")
async def send_message(
    message: MessageRequest,
    stream: bool = Query(False, description="Enable streaming output"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """
    Submit a text message. Returns the paired entries and the day's summary,
    or a "duplicate" result when the text repeats a recent submission.
    """
    async def operation(on_partial):
        return await pipeline.submit(message.content, on_partial=on_partial, force=message.force)

    return await dispatch(pipeline, operation, stream)


@router.post("/message-with-image")
async def send_message_with_image(
    content: str = Form(""),
    image: UploadFile = File(...),
    stream: bool = Form(False, description="Enable streaming output"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """
    Submit a photo, optionally with text. The photo is described by the
    vision model and the description goes through the normal pipeline.
    """
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"kind": "invalid_request", "message": f"Unsupported image type: {image.content_type}"},
        )
    image_data = await image.read()

    async def operation(on_partial):
        return await pipeline.submit(
            content, image=image_data, media_type=image.content_type, on_partial=on_partial
        )

    return await dispatch(pipeline, operation, stream)


@router.post("/duplicate/confirm")
async def confirm_duplicate(
    stream: bool = Query(False, description="Enable streaming output"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """Send the submission held by the duplicate check."""
    if pipeline.pending_duplicate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"kind": "not_found", "message": "No submission is waiting for confirmation"},
        )

    async def operation(on_partial):
        return await pipeline.confirm_duplicate(on_partial=on_partial)

    return await dispatch(pipeline, operation, stream)


@router.post("/duplicate/cancel")
async def cancel_duplicate(pipeline: ConversationPipeline = Depends(get_pipeline)):
    """Drop the held submission."""
    pending = pipeline.cancel_duplicate()
    return {"cancelled": pending is not None}


@router.get("/entries", response_model=List[dict])
async def list_entries(pipeline: ConversationPipeline = Depends(get_pipeline)):
    """The conversation log, oldest first."""
    return [entry.model_dump(mode="json") for entry in pipeline.entries]


@router.put("/entries/{entry_id}")
async def edit_entry(
    entry_id: str,
    request: EditRequest,
    stream: bool = Query(False, description="Enable streaming output"),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """Edit a submitted message and replay it into its existing reply."""
    async def operation(on_partial):
        return await pipeline.edit(entry_id, request.content, on_partial=on_partial)

    return await dispatch(pipeline, operation, stream)


@router.get("/error")
async def get_error(pipeline: ConversationPipeline = Depends(get_pipeline)):
    """The last user-visible error, if any."""
    error = pipeline.last_error
    return {"error": None if error is None else {"kind": error.kind, "message": error.message}}


@router.delete("/error", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_error(pipeline: ConversationPipeline = Depends(get_pipeline)):
    pipeline.dismiss_error()
