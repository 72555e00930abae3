"""Pytest fixtures for Coastal Knowledge tests."""

import pytest

from tests.mocks import MockMemoryClient


@pytest.fixture
def mock_memory_client():
    """Create a mock Memory client."""
    return MockMemoryClient()


@pytest.fixture
def repository(mock_memory_client):
    """KnowledgeRepository seeded with the default tree."""
    from coastal_knowledge.repositories import KnowledgeRepository

    return KnowledgeRepository(mock_memory_client)


@pytest.fixture
def empty_repository(mock_memory_client):
    """KnowledgeRepository that starts with an empty tree."""
    from coastal_knowledge.repositories import KnowledgeRepository

    return KnowledgeRepository(mock_memory_client, seed_default_tree=False)


@pytest.fixture
def tree_tools(repository):
    """Create TreeTools over the seeded repository."""
    from coastal_knowledge.tools.tree_tools import TreeTools

    return TreeTools(repository=repository, user_name="test_user")


@pytest.fixture
def selection_tools(repository):
    """Create SelectionTools over the seeded repository."""
    from coastal_knowledge.tools.selection_tools import SelectionTools

    return SelectionTools(repository=repository)


@pytest.fixture
def session_tools(mock_memory_client):
    """Create SessionTools with a mock store."""
    from coastal_knowledge.tools.session_tools import SessionTools

    return SessionTools(memory_client=mock_memory_client, ttl_hours=24, max_history=20)
