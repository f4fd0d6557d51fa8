"""
Session Transport - the pipeline's only path to the completion provider.

Owns the provider session for the current system instruction, streams a
reply while handing the cumulative text to the caller, and turns every
provider failure into a ProviderError. It never retries; see retry.py.
"""

import hashlib
import inspect
import logging
import time
from typing import Awaitable, Callable, Optional, Union

import httpx

from ..core.errors import PipelineBusyError, ProviderError
from ..llm.base import LLMProvider
from ..llm.session import ChatSession, create_session

logger = logging.getLogger(__name__)

TextCallback = Callable[[str], Union[None, Awaitable[None]]]


async def emit_text(callback: Optional[TextCallback], text: str) -> None:
    if callback is None:
        return
    result = callback(text)
    if inspect.isawaitable(result):
        await result


def instruction_key(system_instruction: str) -> str:
    return hashlib.sha256(system_instruction.encode("utf-8")).hexdigest()


def to_provider_error(error: Exception) -> ProviderError:
    """Map a provider-side exception onto the pipeline's error taxonomy."""
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, httpx.TimeoutException):
        return ProviderError("Request timed out", is_timeout=True)
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        return ProviderError(
            f"Provider returned HTTP {status_code}",
            status_code=status_code,
            retryable=status_code == 429 or status_code >= 500,
        )
    if isinstance(error, httpx.HTTPError):
        return ProviderError(f"Network error: {error}")
    return ProviderError(f"Provider failure: {error}")


class SessionTransport:
    """
    One logical conversation per system instruction.

    The session is cached state: ``configure`` only records the new
    instruction and the session is rebuilt on the next send if the
    instruction actually changed.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider],
        system_instruction: str = "",
        temperature: Optional[float] = None,
        session_factory: Callable[..., ChatSession] = create_session,
    ):
        self.provider = provider
        self.temperature = temperature
        self._session_factory = session_factory
        self._instruction = system_instruction
        self._session: Optional[ChatSession] = None
        self._session_key: Optional[str] = None
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def system_instruction(self) -> str:
        return self._instruction

    def configure(self, system_instruction: str) -> None:
        """Set the system instruction used by future sends."""
        self._instruction = system_instruction

    def _current_session(self) -> ChatSession:
        key = instruction_key(self._instruction)
        if self._session is None or key != self._session_key:
            if self._session is not None:
                logger.info("System instruction changed, starting a new provider session")
            self._session = self._session_factory(
                self.provider, self._instruction, temperature=self.temperature
            )
            self._session_key = key
        return self._session

    async def send(
        self,
        message: str,
        on_partial: Optional[TextCallback] = None,
        on_done: Optional[TextCallback] = None,
    ) -> str:
        """
        Send a message and stream the reply.

        Args:
            message: User message text
            on_partial: Called with the cumulative reply after every fragment
            on_done: Called once with the final reply

        Returns:
            The final reply text

        Raises:
            PipelineBusyError: If another send is in flight on this transport
            ProviderError: On transport, timeout or request failure
            Exception: Whatever on_partial or on_done raised, unchanged
        """
        if self._in_flight:
            raise PipelineBusyError("A provider request is already in flight")
        if self.provider is None:
            raise ProviderError(
                "LLM not configured. Set LLM_API_KEY to enable the coach.", retryable=False
            )

        self._in_flight = True
        start_time = time.time()
        text = ""
        callback_error: Optional[Exception] = None
        try:
            session = self._current_session()
            async for fragment in session.send_stream(message):
                text += fragment
                try:
                    await emit_text(on_partial, text)
                except Exception as e:
                    callback_error = e
                    raise
            try:
                await emit_text(on_done, text)
            except Exception as e:
                callback_error = e
                raise
            return text
        except Exception as e:
            # Caller callbacks fail on their own terms, not as provider failures
            if e is callback_error:
                raise
            error = to_provider_error(e)
            logger.error(
                f"Send failed: {error.message}",
                extra={"extra_fields": {
                    "status_code": error.status_code,
                    "is_timeout": error.is_timeout,
                    "received_chars": len(text),
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            if error is e:
                raise
            raise error from e
        finally:
            self._in_flight = False
