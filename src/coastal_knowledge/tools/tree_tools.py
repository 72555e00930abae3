"""Knowledge tree editing tools for Coastal Knowledge."""

import logging
import re
import uuid
from datetime import date, datetime
from typing import Any, Optional

from ..models import (
    CONTENT_TYPES,
    MAX_RULE_INSTRUCTION_LENGTH,
    PRIORITIES,
    Department,
    KnowledgeItem,
    KnowledgeItemResult,
    KnowledgeScope,
    KnowledgeTree,
    SubDepartment,
    TreeMutationResult,
    Workflow,
    workflow_path,
)
from ..models.knowledge import (
    CONTENT_TYPE_COMMAND,
    CONTENT_TYPE_RULE,
    CONTENT_TYPE_SMART_RULE,
    CONTENT_TYPE_SOP,
    PRIORITY_MEDIUM,
)
from ..repositories import KnowledgeRepository
from ..selection import parse_timestamp

logger = logging.getLogger(__name__)

NODE_TYPES = ["department", "subDepartment", "workflow"]

_VERSION_PATTERN = re.compile(r"^v(\d{4}-\d{2}-\d{2})-(\d+)$")

# Fields accepted by update_knowledge_item
UPDATABLE_ITEM_FIELDS = [
    "title",
    "type",
    "ai_instructions",
    "command_body",
    "content",
    "scope",
    "tags",
    "priority",
    "order",
    "effective",
    "sunset",
    "is_active",
]


def next_version(current: str, today: Optional[date] = None) -> str:
    """Next ``v<date>-<NNN>`` version string.

    The counter continues within the same day and restarts at 001 otherwise.
    """
    today = today or date.today()
    stamp = today.isoformat()
    match = _VERSION_PATTERN.match(current or "")
    if match and match.group(1) == stamp:
        return f"v{stamp}-{int(match.group(2)) + 1:03d}"
    return f"v{stamp}-001"


def _clean_labels(values: Optional[list[str]]) -> list[str]:
    """Trim labels, dropping blanks and duplicates while keeping order."""
    cleaned: list[str] = []
    for value in values or []:
        text = str(value).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class TreeTools:
    """Tools for editing the knowledge tree."""

    def __init__(self, repository: KnowledgeRepository, user_name: str = "admin"):
        """Initialize tree tools.

        Args:
            repository: Knowledge repository
            user_name: Default editor recorded in ``updatedBy``
        """
        self.repository = repository
        self.user_name = user_name or "admin"

    def get_tree(self) -> KnowledgeTree:
        """Get a snapshot of the knowledge tree."""
        return self.repository.get_tree()

    def _commit(self, tree: KnowledgeTree) -> bool:
        """Stamp version/lastModified and persist."""
        tree.version = next_version(tree.version)
        tree.last_modified = datetime.now().isoformat()
        return self.repository.save_tree(tree)

    # ===================
    # Node operations
    # ===================

    def _find_department(self, tree: KnowledgeTree, department_id: str) -> Optional[Department]:
        return next((d for d in tree.departments if d.id == department_id), None)

    def add_department(self, name: str, description: str = "") -> TreeMutationResult:
        """Add a department at the end of the tree."""
        if not name or not name.strip():
            return TreeMutationResult(success=False, node_type="department", message="Department name is required")

        tree = self.repository.get_tree()
        department = Department(
            id=_new_id("dept"),
            name=name.strip(),
            description=description,
            order=len(tree.departments) + 1,
        )
        tree.departments.append(department)

        if not self._commit(tree):
            return TreeMutationResult(success=False, node_type="department", message="Failed to save knowledge tree")

        logger.info(f"Added department '{department.name}' ({department.id})")
        return TreeMutationResult(
            success=True,
            node_type="department",
            node_id=department.id,
            tree_version=tree.version,
            message=f"Department '{department.name}' added.",
        )

    def add_sub_department(
        self,
        department_id: str,
        name: str,
        description: str = "",
    ) -> TreeMutationResult:
        """Add a sub-department under a department."""
        if not name or not name.strip():
            return TreeMutationResult(success=False, node_type="subDepartment", message="Sub-department name is required")

        tree = self.repository.get_tree()
        department = self._find_department(tree, department_id)
        if department is None:
            return TreeMutationResult(
                success=False,
                node_type="subDepartment",
                message=f"Department not found: {department_id}",
            )

        sub = SubDepartment(
            id=_new_id("subdept"),
            name=name.strip(),
            description=description,
            order=len(department.sub_departments) + 1,
        )
        department.sub_departments.append(sub)

        if not self._commit(tree):
            return TreeMutationResult(success=False, node_type="subDepartment", message="Failed to save knowledge tree")

        logger.info(f"Added sub-department '{sub.name}' under '{department.name}'")
        return TreeMutationResult(
            success=True,
            node_type="subDepartment",
            node_id=sub.id,
            tree_version=tree.version,
            message=f"Sub-department '{sub.name}' added to '{department.name}'.",
        )

    def add_workflow(
        self,
        department_id: str,
        sub_department_id: str,
        name: str,
        description: str = "",
    ) -> TreeMutationResult:
        """Add a workflow under a sub-department."""
        if not name or not name.strip():
            return TreeMutationResult(success=False, node_type="workflow", message="Workflow name is required")

        tree = self.repository.get_tree()
        department = self._find_department(tree, department_id)
        sub = None
        if department is not None:
            sub = next((s for s in department.sub_departments if s.id == sub_department_id), None)
        if sub is None:
            return TreeMutationResult(
                success=False,
                node_type="workflow",
                message=f"Sub-department not found: {department_id}/{sub_department_id}",
            )

        workflow = Workflow(
            id=_new_id("workflow"),
            name=name.strip(),
            description=description,
            order=len(sub.workflows) + 1,
        )
        sub.workflows.append(workflow)

        if not self._commit(tree):
            return TreeMutationResult(success=False, node_type="workflow", message="Failed to save knowledge tree")

        logger.info(f"Added workflow '{workflow.name}' under '{department.name} > {sub.name}'")
        return TreeMutationResult(
            success=True,
            node_type="workflow",
            node_id=workflow.id,
            tree_version=tree.version,
            message=f"Workflow '{workflow.name}' added.",
        )

    def _find_node(self, tree: KnowledgeTree, node_type: str, node_id: str):
        """Find a node and the list that owns it."""
        if node_type == "department":
            for dept in tree.departments:
                if dept.id == node_id:
                    return dept, tree.departments
        elif node_type == "subDepartment":
            for dept in tree.departments:
                for sub in dept.sub_departments:
                    if sub.id == node_id:
                        return sub, dept.sub_departments
        elif node_type == "workflow":
            for dept in tree.departments:
                for sub in dept.sub_departments:
                    for workflow in sub.workflows:
                        if workflow.id == node_id:
                            return workflow, sub.workflows
        return None, None

    def rename_node(self, node_type: str, node_id: str, new_name: str) -> TreeMutationResult:
        """Rename a department, sub-department or workflow."""
        if node_type not in NODE_TYPES:
            return TreeMutationResult(
                success=False,
                node_type=node_type,
                node_id=node_id,
                message=f"Invalid node type. Valid types: {', '.join(NODE_TYPES)}",
            )
        if not new_name or not new_name.strip():
            return TreeMutationResult(success=False, node_type=node_type, node_id=node_id, message="Name is required")

        tree = self.repository.get_tree()
        node, _ = self._find_node(tree, node_type, node_id)
        if node is None:
            return TreeMutationResult(
                success=False,
                node_type=node_type,
                node_id=node_id,
                message=f"{node_type} not found: {node_id}",
            )

        old_name = node.name
        node.name = new_name.strip()

        if not self._commit(tree):
            return TreeMutationResult(success=False, node_type=node_type, node_id=node_id, message="Failed to save knowledge tree")

        logger.info(f"Renamed {node_type} '{old_name}' to '{node.name}'")
        return TreeMutationResult(
            success=True,
            node_type=node_type,
            node_id=node_id,
            tree_version=tree.version,
            message=f"Renamed '{old_name}' to '{node.name}'.",
        )

    def delete_node(self, node_type: str, node_id: str) -> TreeMutationResult:
        """Delete a node and everything under it."""
        if node_type not in NODE_TYPES:
            return TreeMutationResult(
                success=False,
                node_type=node_type,
                node_id=node_id,
                message=f"Invalid node type. Valid types: {', '.join(NODE_TYPES)}",
            )

        tree = self.repository.get_tree()
        node, siblings = self._find_node(tree, node_type, node_id)
        if node is None:
            return TreeMutationResult(
                success=False,
                node_type=node_type,
                node_id=node_id,
                message=f"{node_type} not found: {node_id}",
            )

        siblings.remove(node)

        if not self._commit(tree):
            return TreeMutationResult(success=False, node_type=node_type, node_id=node_id, message="Failed to save knowledge tree")

        logger.info(f"Deleted {node_type} '{node.name}' ({node_id})")
        return TreeMutationResult(
            success=True,
            node_type=node_type,
            node_id=node_id,
            tree_version=tree.version,
            message=f"Deleted '{node.name}'.",
        )

    # ===================
    # Item operations
    # ===================

    def _normalize_content(self, item: KnowledgeItem) -> None:
        """Keep only the content fields used by the item's type."""
        if item.type == CONTENT_TYPE_RULE:
            item.content, item.command_body = None, None
        elif item.type == CONTENT_TYPE_COMMAND:
            item.content, item.ai_instructions = None, None
        elif item.type == CONTENT_TYPE_SMART_RULE:
            item.command_body = None
        elif item.type == CONTENT_TYPE_SOP:
            item.ai_instructions, item.command_body = None, None

    def _validate_item(self, item: KnowledgeItem) -> list[str]:
        errors = []

        if not item.title.strip():
            errors.append("title is required")

        if item.type not in CONTENT_TYPES:
            errors.append(f"type must be one of {CONTENT_TYPES}")

        if item.priority not in PRIORITIES:
            errors.append(f"priority must be one of {PRIORITIES}")

        if not isinstance(item.order, int) or isinstance(item.order, bool):
            errors.append("order must be an integer")

        if item.type in (CONTENT_TYPE_RULE, CONTENT_TYPE_SMART_RULE):
            if not (item.ai_instructions or "").strip():
                errors.append(f"aiInstructions is required for {item.type} items")
        if item.type == CONTENT_TYPE_RULE and len(item.ai_instructions or "") > MAX_RULE_INSTRUCTION_LENGTH:
            errors.append(
                f"aiInstructions must be at most {MAX_RULE_INSTRUCTION_LENGTH} characters "
                f"(got {len(item.ai_instructions)})"
            )
        if item.type == CONTENT_TYPE_COMMAND and not (item.command_body or "").strip():
            errors.append("commandBody is required for command items")
        if item.type in (CONTENT_TYPE_SOP, CONTENT_TYPE_SMART_RULE) and not (item.content or "").strip():
            errors.append(f"content is required for {item.type} items")

        effective = parse_timestamp(item.effective)
        if effective is None:
            errors.append(f"effective is not a valid ISO date: {item.effective!r}")
        if item.sunset:
            sunset = parse_timestamp(item.sunset)
            if sunset is None:
                errors.append(f"sunset is not a valid ISO date: {item.sunset!r}")
            elif effective is not None and sunset <= effective:
                errors.append("sunset must be after effective")

        severity_max = item.scope.severity_max
        if severity_max is not None and (
            isinstance(severity_max, bool)
            or not isinstance(severity_max, (int, float))
            or severity_max < 0
        ):
            errors.append("scope.severity_max must be a non-negative number")

        return errors

    def add_knowledge_item(
        self,
        workflow_id: str,
        title: str,
        type: str = CONTENT_TYPE_RULE,
        ai_instructions: Optional[str] = None,
        command_body: Optional[str] = None,
        content: Optional[str] = None,
        scope: Optional[dict[str, Any]] = None,
        tags: Optional[list[str]] = None,
        priority: str = PRIORITY_MEDIUM,
        order: int = 1,
        effective: Optional[str] = None,
        sunset: Optional[str] = None,
        change_note: str = "",
        is_active: bool = True,
        user: Optional[str] = None,
    ) -> KnowledgeItemResult:
        """Add a knowledge item to a workflow.

        Args:
            workflow_id: Target workflow
            title: Display title
            type: rule / command / smartRule / sop
            ai_instructions: Instruction text (rule, smartRule)
            command_body: Command payload (command)
            content: Procedure or logic text (sop, smartRule)
            scope: {"role": [...], "state": [...], "severity_max": n, "department": [...]}
            tags: Intent tags
            priority: High / Medium / Low
            order: Tie-breaker within a priority
            effective: ISO date (default: today)
            sunset: ISO date or None
            change_note: Reason for the change
            is_active: Kill switch
            user: Editor (default: configured user)

        Returns:
            KnowledgeItemResult
        """
        user = user or self.user_name
        now = datetime.now()

        scope_obj = KnowledgeScope.from_dict(scope)
        scope_obj.role = _clean_labels(scope_obj.role)
        scope_obj.state = _clean_labels(scope_obj.state)
        scope_obj.department = _clean_labels(scope_obj.department)

        item = KnowledgeItem(
            id=_new_id("item"),
            title=(title or "").strip(),
            type=type,
            ai_instructions=ai_instructions,
            command_body=command_body,
            content=content,
            scope=scope_obj,
            tags=_clean_labels(tags),
            priority=priority,
            order=order,
            version=next_version(""),
            effective=effective or date.today().isoformat(),
            sunset=sunset or None,
            created_at=now.isoformat(),
            updated_at=now.isoformat(),
            updated_by=user,
            change_note=change_note,
            is_active=is_active,
        )
        self._normalize_content(item)

        errors = self._validate_item(item)
        if errors:
            return KnowledgeItemResult(
                success=False,
                validation_errors=errors,
                message=f"Invalid knowledge item: {'; '.join(errors)}",
            )

        tree = self.repository.get_tree()
        for dept, sub, workflow in tree.iter_workflows():
            if workflow.id == workflow_id:
                workflow.items.append(item)
                path = workflow_path(dept, sub, workflow)
                break
        else:
            return KnowledgeItemResult(success=False, message=f"Workflow not found: {workflow_id}")

        if not self._commit(tree):
            return KnowledgeItemResult(success=False, message="Failed to save knowledge tree")

        logger.info(f"Added {item.type} '{item.title}' ({item.id}) to {path}")
        return KnowledgeItemResult(
            success=True,
            item=item,
            path=path,
            message=f"Knowledge item '{item.title}' added.",
        )

    def update_knowledge_item(
        self,
        item_id: str,
        updates: dict[str, Any],
        change_note: str = "",
        user: Optional[str] = None,
    ) -> KnowledgeItemResult:
        """Update fields of a knowledge item in place.

        Args:
            item_id: Item to update
            updates: Field name -> new value (see UPDATABLE_ITEM_FIELDS)
            change_note: Reason for the change
            user: Editor (default: configured user)

        Returns:
            KnowledgeItemResult
        """
        user = user or self.user_name

        unknown = [name for name in updates if name not in UPDATABLE_ITEM_FIELDS]
        if unknown:
            return KnowledgeItemResult(
                success=False,
                validation_errors=[f"unknown field: {name}" for name in unknown],
                message=f"Unknown fields: {', '.join(unknown)}",
            )

        tree = self.repository.get_tree()
        found = tree.find_item(item_id)
        if found is None:
            return KnowledgeItemResult(success=False, message=f"Knowledge item not found: {item_id}")
        workflow, item = found

        updated_fields = []
        for name, value in updates.items():
            if name == "scope":
                value = KnowledgeScope.from_dict(value)
                value.role = _clean_labels(value.role)
                value.state = _clean_labels(value.state)
                value.department = _clean_labels(value.department)
            elif name == "tags":
                value = _clean_labels(value)
            elif name == "sunset":
                value = value or None
            if getattr(item, name) != value:
                setattr(item, name, value)
                updated_fields.append(name)

        self._normalize_content(item)
        errors = self._validate_item(item)
        if errors:
            return KnowledgeItemResult(
                success=False,
                validation_errors=errors,
                message=f"Invalid knowledge item: {'; '.join(errors)}",
            )

        if not updated_fields:
            return KnowledgeItemResult(success=True, item=item, message="No changes.")

        now = datetime.now()
        item.version = next_version(item.version)
        item.updated_at = now.isoformat()
        item.updated_by = user
        item.change_note = change_note

        if not self._commit(tree):
            return KnowledgeItemResult(success=False, message="Failed to save knowledge tree")

        path = next(
            workflow_path(d, s, w) for d, s, w in tree.iter_workflows() if w is workflow
        )
        logger.info(f"Updated knowledge item {item_id}: {', '.join(updated_fields)}")
        return KnowledgeItemResult(
            success=True,
            item=item,
            path=path,
            updated_fields=updated_fields,
            message=f"Knowledge item '{item.title}' updated.",
        )

    def delete_knowledge_item(self, item_id: str) -> KnowledgeItemResult:
        """Remove a knowledge item from its workflow."""
        tree = self.repository.get_tree()
        found = tree.find_item(item_id)
        if found is None:
            return KnowledgeItemResult(success=False, message=f"Knowledge item not found: {item_id}")
        workflow, item = found

        workflow.items.remove(item)

        if not self._commit(tree):
            return KnowledgeItemResult(success=False, message="Failed to save knowledge tree")

        logger.info(f"Deleted knowledge item '{item.title}' ({item_id})")
        return KnowledgeItemResult(
            success=True,
            item=item,
            message=f"Knowledge item '{item.title}' deleted.",
        )
