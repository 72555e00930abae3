"""Knowledge selection tools for Coastal Knowledge."""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..models import (
    LocatedItem,
    ReviewConflictsResult,
    RuleSelectionContext,
    SelectKnowledgeResult,
    workflow_path,
)
from ..repositories import KnowledgeRepository
from ..selection import (
    ConflictStrategy,
    TokenOverlapStrategy,
    check_validity,
    detect_conflicts,
    generate_knowledge_prompt,
    generate_rule_prompt,
    loose_match,
    select_knowledge_items,
    select_rules,
)
from ..selection.conflicts import is_conflict_candidate

logger = logging.getLogger(__name__)


class SelectionTools:
    """Tools for selecting knowledge for a user request."""

    def __init__(
        self,
        repository: KnowledgeRepository,
        conflict_strategy: Optional[ConflictStrategy] = None,
    ):
        """Initialize selection tools.

        Args:
            repository: Knowledge repository
            conflict_strategy: Pairwise conflict test (default: token overlap)
        """
        self.repository = repository
        self.conflict_strategy = conflict_strategy or TokenOverlapStrategy()

    def _build_context(
        self,
        user_id: str,
        user_role: str,
        user_department: str,
        user_state: Optional[str],
        claim_severity: Optional[float],
        intent: Optional[str],
        workflow_context: Optional[str],
    ) -> RuleSelectionContext:
        return RuleSelectionContext(
            user_id=user_id,
            user_role=user_role,
            user_department=user_department,
            user_state=user_state or None,
            claim_severity=claim_severity,
            intent=intent or None,
            workflow_context=workflow_context or None,
        )

    def select_knowledge(
        self,
        user_id: str,
        user_role: str,
        user_department: str,
        user_state: Optional[str] = None,
        claim_severity: Optional[float] = None,
        intent: Optional[str] = None,
        workflow_context: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SelectKnowledgeResult:
        """Select knowledge items from the tree and build the AI prompt.

        Args:
            user_id: Requesting user
            user_role: Role used for scope matching
            user_department: Department name (loosely matched)
            user_state: Jurisdiction
            claim_severity: Claim severity
            intent: Free-text intent matched against tags
            workflow_context: Current workflow (informational)
            now: Reference time (default: now)

        Returns:
            SelectKnowledgeResult with the selection and rendered prompt
        """
        context = self._build_context(
            user_id, user_role, user_department, user_state,
            claim_severity, intent, workflow_context,
        )
        tree = self.repository.get_tree()
        selection = select_knowledge_items(tree, context, now, self.conflict_strategy)

        prompt = generate_knowledge_prompt([located.item for located in selection.selected_items])

        for issue in selection.audit_log.data_issues:
            logger.warning(f"Knowledge data issue: {issue}")

        logger.info(
            f"select_knowledge: {len(selection.selected_items)} items for "
            f"{user_id} ({user_role}, {user_department})"
        )
        return SelectKnowledgeResult(
            success=True,
            selection=selection,
            prompt=prompt,
            message=(
                f"Selected {len(selection.selected_items)} items, "
                f"{len(selection.conflicts)} potential conflicts."
            ),
        )

    def select_rules(
        self,
        user_id: str,
        user_role: str,
        user_department: str,
        user_state: Optional[str] = None,
        claim_severity: Optional[float] = None,
        intent: Optional[str] = None,
        workflow_context: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SelectKnowledgeResult:
        """Select rules from the legacy flat rule list."""
        context = self._build_context(
            user_id, user_role, user_department, user_state,
            claim_severity, intent, workflow_context,
        )
        rules = self.repository.get_rules()
        selection = select_rules(rules, context, now, self.conflict_strategy)

        prompt = generate_rule_prompt([located.item for located in selection.selected_items])

        logger.info(f"select_rules: {len(selection.selected_items)}/{len(rules)} rules for {user_id}")
        return SelectKnowledgeResult(
            success=True,
            selection=selection,
            prompt=prompt,
            message=(
                f"Selected {len(selection.selected_items)} rules, "
                f"{len(selection.conflicts)} potential conflicts."
            ),
        )

    def review_conflicts(
        self,
        department: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewConflictsResult:
        """Check every live high-priority rule in the tree for conflicts.

        Args:
            department: Limit the review to departments loosely matching this name
            now: Reference time (default: now)

        Returns:
            ReviewConflictsResult
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        tree = self.repository.get_tree()

        reviewed = []
        for dept, sub, workflow in tree.iter_workflows():
            if department and not loose_match(dept.name, department):
                continue
            path = workflow_path(dept, sub, workflow)
            for item in workflow.items:
                if not is_conflict_candidate(item):
                    continue
                valid, _ = check_validity(item, now)
                if valid:
                    reviewed.append(LocatedItem(item=item, path=path))

        conflicts = detect_conflicts(reviewed, self.conflict_strategy)

        scope_label = f"department '{department}'" if department else "all departments"
        logger.info(f"review_conflicts: {len(conflicts)} conflicts among {len(reviewed)} rules in {scope_label}")
        return ReviewConflictsResult(
            success=True,
            reviewed_count=len(reviewed),
            conflicts=conflicts,
            message=f"Reviewed {len(reviewed)} high-priority rules in {scope_label}: {len(conflicts)} potential conflicts.",
        )
