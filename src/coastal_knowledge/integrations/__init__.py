"""Integration modules for external services."""

from .memory_client import (
    LocalMemoryBackend,
    MemoryBackend,
    MemoryClient,
    MemoryEntry,
    MemoryOperationResult,
    RestMemoryBackend,
)
from .retry import RETRYABLE_EXCEPTIONS, backoff_delay, with_retry

__all__ = [
    # Memory
    "LocalMemoryBackend",
    "MemoryBackend",
    "MemoryClient",
    "MemoryEntry",
    "MemoryOperationResult",
    "RestMemoryBackend",
    # Retry
    "RETRYABLE_EXCEPTIONS",
    "backoff_delay",
    "with_retry",
]
