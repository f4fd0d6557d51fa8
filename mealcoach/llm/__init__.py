"""LLM module - provider interface, OpenAI-compatible binding and chat sessions."""

from .base import LLMProvider, LLMMessage, LLMResponse
from .openai_provider import OpenAIProvider
from .factory import create_llm_provider
from .session import ChatSession, create_session
from .vision import ImageDescriber

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'OpenAIProvider',
    'create_llm_provider',
    'ChatSession',
    'create_session',
    'ImageDescriber',
]
