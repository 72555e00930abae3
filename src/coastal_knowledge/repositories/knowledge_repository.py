"""Knowledge repository - persists the knowledge tree and legacy rules."""

import logging

from ..integrations.memory_client import MemoryClient
from ..models.default_tree import create_default_knowledge_tree
from ..models.knowledge import KnowledgeTree
from ..models.rules import Rule

logger = logging.getLogger(__name__)


class KnowledgeRepository:
    """Repository for the knowledge tree and the legacy flat rule list.

    Every read returns freshly built objects, so callers can treat the result
    as a private snapshot.
    """

    TREE_KEY = "coastal:knowledge_tree"
    RULES_KEY = "coastal:rules"

    def __init__(self, memory_client: MemoryClient, seed_default_tree: bool = True):
        """Initialize the repository.

        Args:
            memory_client: Key/value store
            seed_default_tree: Store the default department tree when empty
        """
        self.memory = memory_client
        self.seed_default_tree = seed_default_tree

    def get_tree(self) -> KnowledgeTree:
        """Load a snapshot of the knowledge tree.

        An unreadable stored tree is left in place: the default tree is
        returned without saving, so the stored value can still be repaired.

        Returns:
            The stored tree, the default tree, or an empty tree
        """
        data = self.memory.get_json(self.TREE_KEY)

        if isinstance(data, dict):
            return KnowledgeTree.from_dict(data)

        stored = data is not None or self.memory.get(self.TREE_KEY) is not None
        if stored:
            logger.warning(f"Unreadable knowledge tree under '{self.TREE_KEY}', not overwriting it")

        if not self.seed_default_tree:
            return KnowledgeTree()

        tree = create_default_knowledge_tree()
        if stored:
            return tree

        logger.info(f"Seeding default knowledge tree ({len(tree.departments)} departments)")
        self.save_tree(tree)
        return tree

    def save_tree(self, tree: KnowledgeTree) -> bool:
        """Persist the knowledge tree.

        Returns:
            True if the store accepted the write
        """
        result = self.memory.set(self.TREE_KEY, tree.to_dict())
        if not result.success:
            logger.error(f"Failed to save knowledge tree: {result.message}")
            return False

        logger.info(f"Saved knowledge tree {tree.version} ({tree.count_items()} items)")
        return True

    def get_rules(self) -> list[Rule]:
        """Load a snapshot of the legacy flat rule list."""
        data = self.memory.get_json(self.RULES_KEY)
        if not isinstance(data, list):
            return []
        return [Rule.from_dict(entry) for entry in data if isinstance(entry, dict)]

    def save_rules(self, rules: list[Rule]) -> bool:
        """Persist the legacy flat rule list."""
        result = self.memory.set(self.RULES_KEY, [rule.to_dict() for rule in rules])
        if not result.success:
            logger.error(f"Failed to save rules: {result.message}")
            return False
        return True
