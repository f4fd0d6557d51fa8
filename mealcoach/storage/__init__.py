"""Storage module - key-value interface, implementations and tracker records."""

from .interface import KeyValueStore
from .local_storage import LocalKeyValueStore
from .memory_storage import InMemoryKeyValueStore
from .tracker_storage import TrackerStorage, create_key_value_store

__all__ = [
    'KeyValueStore',
    'LocalKeyValueStore',
    'InMemoryKeyValueStore',
    'TrackerStorage',
    'create_key_value_store',
]
