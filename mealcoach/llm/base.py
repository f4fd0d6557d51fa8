"""
LLM Provider Base - Abstract base for completion providers.
Supports multimodal messages (text + images).
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, List, Optional, Union


@dataclass
class LLMMessage:
    """
    A message in a conversation.
    Content is either plain text or a list of multimodal content blocks.
    """
    role: str  # "system", "user", "assistant"
    content: Union[str, List[Dict[str, Any]]]

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only message."""
        return LLMMessage(role=role, content=text)

    @staticmethod
    def with_images(role: str, text: str, images: List[Dict[str, Any]]) -> "LLMMessage":
        """
        Create a message with inline images.

        Args:
            role: Message role
            text: Text content, placed after the images
            images: Dicts with 'data' (raw bytes) and 'media_type'
        """
        content_parts: List[Dict[str, Any]] = []
        for img in images:
            encoded = base64.b64encode(img["data"]).decode("utf-8")
            content_parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{img['media_type']};base64,{encoded}"}
            })
        content_parts.append({"type": "text", "text": text})
        return LLMMessage(role=role, content=content_parts)


@dataclass
class LLMResponse:
    """Response from a non-streaming completion call."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """
    Abstract base class for completion providers.
    Providers are stateless; conversation history lives in ChatSession.
    """

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 2048):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request and wait for the whole reply.

        Args:
            messages: Conversation messages (supports multimodal)
            temperature: Sampling temperature override
            max_tokens: Max tokens override

        Returns:
            LLMResponse with the generated content
        """

    @abstractmethod
    def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        """
        Stream a chat completion.

        Yields:
            str: Text fragments (deltas) in arrival order
        """

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [{"role": m.role, "content": m.content} for m in messages]
