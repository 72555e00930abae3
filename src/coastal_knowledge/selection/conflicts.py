"""Conflict detection between high-priority rules.

Conflicts are advisory: they are reported for human review and never
resolved automatically.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Union

from ..models.knowledge import CONTENT_TYPE_RULE, PRIORITY_HIGH
from ..models.selection import LocatedItem, RuleConflict, Selectable


class ConflictStrategy(ABC):
    """Decides whether two rules compete with each other."""

    @abstractmethod
    def are_conflicting(self, a: Selectable, b: Selectable) -> bool:
        ...


class TokenOverlapStrategy(ConflictStrategy):
    """Lexical overlap of AI instructions.

    Two instructions conflict when they share at least ``min_shared_tokens``
    distinct whitespace-separated words of at least ``min_token_length``
    characters, compared case-insensitively.
    """

    def __init__(self, min_token_length: int = 4, min_shared_tokens: int = 3):
        self.min_token_length = min_token_length
        self.min_shared_tokens = min_shared_tokens

    def _tokens(self, text: str) -> set[str]:
        return {
            word
            for word in text.lower().split()
            if len(word) >= self.min_token_length
        }

    def shared_tokens(self, a: Selectable, b: Selectable) -> set[str]:
        return self._tokens(a.ai_instructions or "") & self._tokens(b.ai_instructions or "")

    def are_conflicting(self, a: Selectable, b: Selectable) -> bool:
        return len(self.shared_tokens(a, b)) >= self.min_shared_tokens


def is_conflict_candidate(item: Selectable) -> bool:
    """Only fully resolved, high-priority rules are compared."""
    return (
        item.priority == PRIORITY_HIGH
        and item.type == CONTENT_TYPE_RULE
        and bool(item.ai_instructions)
    )


def detect_conflicts(
    items: Sequence[Union[LocatedItem, Selectable]],
    strategy: Optional[ConflictStrategy] = None,
) -> list[RuleConflict]:
    """Flag every pair of competing high-priority rules.

    Args:
        items: Selected items, in selection order. Bare items are located at
            ``"Unknown"``.
        strategy: Pairwise test (default: TokenOverlapStrategy())

    Returns:
        One RuleConflict per conflicting pair, in scan order
    """
    strategy = strategy or TokenOverlapStrategy()

    located = [
        entry if isinstance(entry, LocatedItem) else LocatedItem(item=entry, path="Unknown")
        for entry in items
    ]
    rules = [entry for entry in located if is_conflict_candidate(entry.item)]

    conflicts = []
    for i in range(len(rules)):
        for j in range(i + 1, len(rules)):
            first, second = rules[i], rules[j]
            if strategy.are_conflicting(first.item, second.item):
                conflicts.append(
                    RuleConflict(
                        items=(first, second),
                        conflict_type="instruction",
                        severity="warning",
                        path=first.path or "Unknown",
                    )
                )

    return conflicts
