"""MCP tool implementations."""

from .selection_tools import SelectionTools
from .session_tools import SessionTools, generate_session_id
from .setup_tools import SETTINGS_REGISTRY, SetupTools
from .tree_tools import TreeTools, next_version

__all__ = [
    "SelectionTools",
    "SessionTools",
    "SetupTools",
    "SETTINGS_REGISTRY",
    "TreeTools",
    "generate_session_id",
    "next_version",
]
