"""API module."""

from .chat import router as chat_router
from .summaries import router as summaries_router
from .profile import router as profile_router
from .library import router as library_router

__all__ = ['chat_router', 'summaries_router', 'profile_router', 'library_router']
