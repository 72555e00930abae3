"""Candidate collection strategies.

The selection pipeline is the same for the knowledge tree and the legacy flat
rule list; only the way candidates are gathered differs.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models.knowledge import KnowledgeTree, workflow_path
from ..models.rules import Rule
from ..models.selection import LocatedItem, RuleSelectionContext, Selectable
from .filters import loose_match


class CandidateSet:
    """Ordered, id-deduplicated candidate list plus the paths searched."""

    def __init__(self):
        self._items: list[LocatedItem] = []
        self._ids: set[str] = set()
        self._paths: list[str] = []

    def add(self, item: Selectable, path: str) -> bool:
        """Add an item unless its id is already present.

        The first discovery keeps its path.
        """
        if item.id in self._ids:
            return False
        self._ids.add(item.id)
        self._items.append(LocatedItem(item=item, path=path))
        return True

    def mark_searched(self, path: str) -> None:
        if path not in self._paths:
            self._paths.append(path)

    @property
    def items(self) -> list[LocatedItem]:
        return list(self._items)

    @property
    def searched_paths(self) -> list[str]:
        return list(self._paths)

    def __len__(self) -> int:
        return len(self._items)


def has_matching_tag(tags: Sequence[str], intent: str) -> bool:
    """True when any tag contains the intent or is contained in it."""
    return any(loose_match(tag, intent) for tag in tags)


class CandidateCollector(ABC):
    """Gathers selection candidates for a context."""

    @abstractmethod
    def collect(self, context: RuleSelectionContext) -> CandidateSet:
        ...


class TreeCandidateCollector(CandidateCollector):
    """Walks the knowledge tree: home department first, then intent tags."""

    def __init__(self, tree: KnowledgeTree):
        self.tree = tree

    def collect(self, context: RuleSelectionContext) -> CandidateSet:
        candidates = CandidateSet()

        department = next(
            (
                dept
                for dept in self.tree.departments
                if loose_match(dept.name, context.user_department)
            ),
            None,
        )

        if department is not None:
            candidates.mark_searched(department.name)
            for sub in department.sub_departments:
                candidates.mark_searched(f"{department.name} > {sub.name}")
                for workflow in sub.workflows:
                    path = workflow_path(department, sub, workflow)
                    candidates.mark_searched(path)
                    for item in workflow.items:
                        candidates.add(item, path)

        # Cross-department search by intent
        if context.intent:
            for dept, sub, workflow in self.tree.iter_workflows():
                for item in workflow.items:
                    if has_matching_tag(item.tags, context.intent):
                        candidates.add(item, workflow_path(dept, sub, workflow))

        return candidates


class FlatRuleCandidateCollector(CandidateCollector):
    """Scans a flat rule list using each rule's static department path."""

    def __init__(self, rules: Sequence[Rule]):
        self.rules = list(rules)

    def collect(self, context: RuleSelectionContext) -> CandidateSet:
        candidates = CandidateSet()

        for rule in self.rules:
            if any(loose_match(entry, context.user_department) for entry in rule.department_path):
                candidates.mark_searched(rule.path)
                candidates.add(rule, rule.path)

        if context.intent:
            for rule in self.rules:
                if has_matching_tag(rule.tags, context.intent):
                    candidates.add(rule, rule.path)

        return candidates
