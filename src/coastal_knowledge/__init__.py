"""Coastal Knowledge: department knowledge selection MCP server."""

__version__ = "0.1.0"

from .config import Config, load_config
from .server import KnowledgeServer, main

__all__ = [
    "Config",
    "load_config",
    "KnowledgeServer",
    "main",
]
