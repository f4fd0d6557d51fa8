"""
Shared test fixtures and configuration.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/mealcoach_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LLM_API_KEY", "")

from mealcoach.llm.base import LLMProvider, LLMResponse
from mealcoach.llm.vision import ImageDescriber
from mealcoach.pipeline.controller import ConversationPipeline
from mealcoach.pipeline.transport import SessionTransport
from mealcoach.storage.memory_storage import InMemoryKeyValueStore
from mealcoach.storage.tracker_storage import TrackerStorage

NUTRITION_REPLY = (
    "```json\n"
    "[\n"
    '  {"ingredient": "Boiled Egg", "calories": "155", "protein": 13, "fat": 11,'
    ' "notes": "Great protein start.", "isHealthy": true},\n'
    '  {"ingredient": "White Toast", "calories": 80, "protein": 3, "fat": 1,'
    ' "notes": "Carbs with a side of regret.", "isHealthy": false}\n'
    "]\n"
    "```\n"
    "Solid breakfast. Swap the toast for whole grain next time."
)

ACTIVITY_REPLY = (
    "```json\n"
    '[{"activity": "Running", "duration": 30, "caloriesBurned": "300",'
    ' "notes": "Nice pace."}]\n'
    "```\n"
    "Great run!"
)


def fragments(text: str, size: int = 40) -> list:
    """Split a reply into stream fragments."""
    return [text[i:i + size] for i in range(0, len(text), size)]


class FakeProvider(LLMProvider):
    """
    Scripted provider. Each send pops one script from ``replies``; a script
    is a list of fragments, exceptions (raised when reached) and
    asyncio.Events (waited on when reached).
    """

    def __init__(self):
        super().__init__(api_key="test-key", model="fake-model")
        self.replies = []
        self.stream_calls = []
        self.completion_calls = []
        self.description = "two boiled eggs and a slice of toast"

    def queue_reply(self, text: str) -> None:
        self.replies.append(fragments(text))

    async def chat_completion(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.completion_calls.append(messages)
        return LLMResponse(content=self.description, model=self.model)

    async def chat_completion_stream(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.stream_calls.append(messages)
        script = self.replies.pop(0) if self.replies else fragments(NUTRITION_REPLY)
        for item in script:
            if isinstance(item, Exception):
                raise item
            if isinstance(item, asyncio.Event):
                await item.wait()
                continue
            yield item


class Clock:
    """Settable clock for the pipeline."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return Clock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def tracker(store):
    return TrackerStorage(store)


@pytest.fixture
def pipeline(fake_provider, tracker, clock):
    return ConversationPipeline(
        transport=SessionTransport(fake_provider, system_instruction="You are a coach."),
        storage=tracker,
        describer=ImageDescriber(fake_provider),
        clock=clock,
    )


@pytest.fixture
def nutrition_reply():
    return NUTRITION_REPLY


@pytest.fixture
def activity_reply():
    return ACTIVITY_REPLY
