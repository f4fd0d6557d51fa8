"""
Chat Session - one logical multi-turn conversation with a provider.

The provider API is stateless, so the session keeps the history itself and
replays it on every request. A turn is added to the history only after its
stream finishes; a failed or retried stream leaves no trace.
"""

import logging
from typing import AsyncGenerator, List, Optional

from .base import LLMMessage, LLMProvider

logger = logging.getLogger(__name__)


class ChatSession:
    """Conversation state bound to one system instruction."""

    def __init__(self, provider: LLMProvider, system_instruction: str,
                 temperature: Optional[float] = None):
        self.provider = provider
        self.system_instruction = system_instruction
        self.temperature = temperature
        self.history: List[LLMMessage] = []

    def build_messages(self, message: str) -> List[LLMMessage]:
        messages = [LLMMessage.text("system", self.system_instruction)]
        messages.extend(self.history)
        messages.append(LLMMessage.text("user", message))
        return messages

    async def send_stream(self, message: str) -> AsyncGenerator[str, None]:
        """
        Send a user message and stream the reply.

        Args:
            message: User message text

        Yields:
            str: Reply fragments (deltas) in arrival order
        """
        reply = ""
        async for fragment in self.provider.chat_completion_stream(
            self.build_messages(message), temperature=self.temperature
        ):
            reply += fragment
            yield fragment

        self.history.append(LLMMessage.text("user", message))
        self.history.append(LLMMessage.text("assistant", reply))
        logger.debug(f"Session turn committed: history={len(self.history)} messages")


def create_session(provider: LLMProvider, system_instruction: str,
                   temperature: Optional[float] = None) -> ChatSession:
    """Create a fresh session for the given system instruction."""
    return ChatSession(provider, system_instruction, temperature=temperature)
