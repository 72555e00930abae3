"""Mock clients for testing."""

from .mock_memory import MockMemoryClient

__all__ = ["MockMemoryClient"]
