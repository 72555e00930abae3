"""Deterministic knowledge selection.

Pipeline: collect candidates -> scope filter -> active/date filter ->
sort by priority then order -> conflict detection -> audit log.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..models.knowledge import PRIORITY_RANK, KnowledgeTree
from ..models.rules import Rule
from ..models.selection import (
    LocatedItem,
    RuleSelectionContext,
    RuleSelectionResult,
    SelectionAuditLog,
)
from .candidates import CandidateCollector, FlatRuleCandidateCollector, TreeCandidateCollector
from .conflicts import ConflictStrategy, detect_conflicts
from .filters import check_validity, matches_scope

logger = logging.getLogger(__name__)


def _priority_key(located: LocatedItem) -> tuple[int, int]:
    item = located.item
    return (-PRIORITY_RANK.get(item.priority, 0), item.order)


def run_selection(
    collector: CandidateCollector,
    context: RuleSelectionContext,
    now: Optional[datetime] = None,
    conflict_strategy: Optional[ConflictStrategy] = None,
) -> RuleSelectionResult:
    """Run the selection pipeline over candidates from ``collector``.

    Args:
        collector: Candidate collection strategy
        context: Request context
        now: Reference time (default: current UTC time). Naive values are
            taken as UTC.
        conflict_strategy: Pairwise conflict test

    Returns:
        RuleSelectionResult
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    candidates = collector.collect(context)

    scoped = [
        located
        for located in candidates.items
        if matches_scope(located.item.scope, context)
    ]

    active = []
    data_issues = []
    for located in scoped:
        valid, issue = check_validity(located.item, now)
        if issue:
            data_issues.append(issue)
        if valid:
            active.append(located)

    # sorted() is stable: ties keep collection order
    selected = sorted(active, key=_priority_key)

    conflicts = detect_conflicts(selected, conflict_strategy)

    logger.debug(
        f"Selected {len(selected)}/{len(candidates)} items for "
        f"{context.user_role}@{context.user_department} "
        f"({len(conflicts)} conflicts)"
    )

    return RuleSelectionResult(
        selected_items=selected,
        conflicts=conflicts,
        audit_log=SelectionAuditLog(
            selection_criteria=context,
            candidate_items=[located.id for located in candidates.items],
            filtered_items=[located.id for located in selected],
            timestamp=now.isoformat(),
            rule_path="; ".join(candidates.searched_paths),
            data_issues=data_issues,
        ),
    )


def select_knowledge_items(
    tree: KnowledgeTree,
    context: RuleSelectionContext,
    now: Optional[datetime] = None,
    conflict_strategy: Optional[ConflictStrategy] = None,
) -> RuleSelectionResult:
    """Select applicable knowledge items from a tree snapshot."""
    return run_selection(TreeCandidateCollector(tree), context, now, conflict_strategy)


def select_rules(
    rules: Sequence[Rule],
    context: RuleSelectionContext,
    now: Optional[datetime] = None,
    conflict_strategy: Optional[ConflictStrategy] = None,
) -> RuleSelectionResult:
    """Select applicable rules from a legacy flat rule list."""
    return run_selection(FlatRuleCandidateCollector(rules), context, now, conflict_strategy)
