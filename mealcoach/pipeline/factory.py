"""
Pipeline Factory - builds the process-wide pipeline from settings.
"""

import logging
from datetime import timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

from ..llm.factory import create_llm_provider
from ..llm.vision import ImageDescriber
from ..storage.tracker_storage import TrackerStorage, create_key_value_store
from .controller import ConversationPipeline
from .transport import SessionTransport

logger = logging.getLogger(__name__)

# Global pipeline instance
_pipeline: Optional[ConversationPipeline] = None


def create_pipeline(config: Any) -> ConversationPipeline:
    """
    Wire provider, transport, storage and pipeline from a Settings object.

    Without an API key the pipeline still starts; sends then fail with a
    ProviderError telling the user to configure one.
    """
    provider = create_llm_provider(
        provider=config.llm_provider,
        api_key=config.llm_api_key or "",
        model=config.llm_model,
        base_url=config.llm_base_url,
        timeout=config.llm_timeout_seconds,
    )
    if provider is None:
        logger.warning("LLM_API_KEY is not set; the coach will not be able to reply")

    store = create_key_value_store(
        config.storage_type, config.local_storage_path, config.storage_quota_bytes
    )
    return ConversationPipeline(
        transport=SessionTransport(provider, temperature=config.llm_temperature),
        storage=TrackerStorage(store),
        describer=ImageDescriber(provider) if provider is not None else None,
        duplicate_window=timedelta(minutes=config.duplicate_window_minutes),
        duplicate_threshold=config.duplicate_threshold,
        max_retries=config.provider_max_retries,
        retry_delay=config.provider_retry_delay_seconds,
        backoff_multiplier=config.provider_backoff_multiplier,
        tz=ZoneInfo(config.day_timezone),
    )


async def init_pipeline(config: Any) -> ConversationPipeline:
    """Create the global pipeline and cold-load it."""
    global _pipeline
    _pipeline = create_pipeline(config)
    await _pipeline.load()
    return _pipeline


def get_pipeline() -> ConversationPipeline:
    """
    Get the global pipeline instance.

    Raises:
        RuntimeError: If the pipeline has not been initialized
    """
    if _pipeline is None:
        raise RuntimeError("Pipeline not initialized. Call init_pipeline() first.")
    return _pipeline
