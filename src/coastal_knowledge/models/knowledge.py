"""Knowledge tree data models.

Department > Sub-Department > Workflow > Knowledge Item.

Models serialize to the camelCase JSON shape the admin editor persists, so a
tree saved by any client round-trips through ``to_dict``/``from_dict``.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)


# Content types
CONTENT_TYPE_RULE = "rule"
CONTENT_TYPE_COMMAND = "command"
CONTENT_TYPE_SMART_RULE = "smartRule"
CONTENT_TYPE_SOP = "sop"

CONTENT_TYPES = [
    CONTENT_TYPE_RULE,
    CONTENT_TYPE_COMMAND,
    CONTENT_TYPE_SMART_RULE,
    CONTENT_TYPE_SOP,
]

# Priorities, highest first
PRIORITY_HIGH = "High"
PRIORITY_MEDIUM = "Medium"
PRIORITY_LOW = "Low"

PRIORITIES = [PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_LOW]

PRIORITY_RANK = {
    PRIORITY_HIGH: 3,
    PRIORITY_MEDIUM: 2,
    PRIORITY_LOW: 1,
}

# Maximum length of a rule's AI instruction (checked at entry time only)
MAX_RULE_INSTRUCTION_LENGTH = 160


def _string_list(value: Any) -> list[str]:
    """Coerce a stored list field; None or a non-list reads as empty."""
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def _order_value(data: dict[str, Any], default: int = 1) -> int:
    """Read a stored ``order``; values that are not whole numbers fall back to ``default``."""
    if "order" not in data:
        return default

    value = data["order"]
    if not isinstance(value, bool):
        try:
            number = float(value)
            if number.is_integer():
                return int(number)
        except (TypeError, ValueError):
            pass

    logger.warning(f"Invalid order {value!r} on '{data.get('id', '')}', using {default}")
    return default


def _severity_value(value: Any) -> Optional[float]:
    """Read a stored ``severity_max``; anything non-numeric reads as no cap."""
    if value is None:
        return None

    if not isinstance(value, bool):
        try:
            number = float(value)
            if not math.isnan(number):
                return int(number) if number.is_integer() else number
        except (TypeError, ValueError):
            pass

    logger.warning(f"Ignoring invalid severity_max {value!r}")
    return None


@dataclass
class KnowledgeScope:
    """Eligibility predicate of a knowledge item.

    Empty ``role``/``state`` lists mean unrestricted.
    """

    role: list[str] = field(default_factory=list)
    state: list[str] = field(default_factory=list)
    severity_max: Optional[float] = None
    department: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        data: dict[str, Any] = {
            "role": list(self.role),
            "state": list(self.state),
            "department": list(self.department),
        }
        if self.severity_max is not None:
            data["severity_max"] = self.severity_max
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "KnowledgeScope":
        """Create from dictionary."""
        data = data or {}
        return cls(
            role=_string_list(data.get("role")),
            state=_string_list(data.get("state")),
            severity_max=_severity_value(data.get("severity_max")),
            department=_string_list(data.get("department")),
        )


@dataclass
class KnowledgeItem:
    """A rule, command, smart rule or SOP attached to a workflow."""

    id: str
    title: str
    type: str = CONTENT_TYPE_RULE
    content: Optional[str] = None  # sop / smartRule
    ai_instructions: Optional[str] = None  # rule / smartRule
    command_body: Optional[str] = None  # command
    scope: KnowledgeScope = field(default_factory=KnowledgeScope)
    tags: list[str] = field(default_factory=list)
    priority: str = PRIORITY_MEDIUM
    order: int = 1
    version: str = ""
    effective: str = ""  # ISO date
    sunset: Optional[str] = None  # ISO date
    created_at: str = ""
    updated_at: str = ""
    updated_by: str = ""
    change_note: str = ""
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "scope": self.scope.to_dict(),
            "tags": list(self.tags),
            "priority": self.priority,
            "order": self.order,
            "version": self.version,
            "effective": self.effective,
            "sunset": self.sunset,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "updatedBy": self.updated_by,
            "changeNote": self.change_note,
            "isActive": self.is_active,
        }
        if self.content is not None:
            data["content"] = self.content
        if self.ai_instructions is not None:
            data["aiInstructions"] = self.ai_instructions
        if self.command_body is not None:
            data["commandBody"] = self.command_body
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeItem":
        """Create from dictionary.

        Runtime-only keys such as ``departmentPath`` are ignored.
        """
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            type=data.get("type", CONTENT_TYPE_RULE),
            content=data.get("content"),
            ai_instructions=data.get("aiInstructions"),
            command_body=data.get("commandBody"),
            scope=KnowledgeScope.from_dict(data.get("scope")),
            tags=_string_list(data.get("tags")),
            priority=data.get("priority", PRIORITY_MEDIUM),
            order=_order_value(data),
            version=data.get("version", ""),
            effective=data.get("effective", ""),
            sunset=data.get("sunset") or None,
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            updated_by=data.get("updatedBy", ""),
            change_note=data.get("changeNote", ""),
            is_active=data.get("isActive") is True,
        )


@dataclass
class Workflow:
    """Workflow node owning an ordered list of knowledge items."""

    id: str
    name: str
    description: str = ""
    items: list[KnowledgeItem] = field(default_factory=list)
    order: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "items": [item.to_dict() for item in self.items],
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workflow":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
            items=[KnowledgeItem.from_dict(i) for i in data.get("items") or []],
            order=_order_value(data),
        )


@dataclass
class SubDepartment:
    """Sub-department node owning an ordered list of workflows."""

    id: str
    name: str
    description: str = ""
    workflows: list[Workflow] = field(default_factory=list)
    order: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "workflows": [wf.to_dict() for wf in self.workflows],
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubDepartment":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
            workflows=[Workflow.from_dict(w) for w in data.get("workflows") or []],
            order=_order_value(data),
        )


@dataclass
class Department:
    """Top-level department node."""

    id: str
    name: str
    description: str = ""
    sub_departments: list[SubDepartment] = field(default_factory=list)
    order: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "subDepartments": [sub.to_dict() for sub in self.sub_departments],
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Department":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
            sub_departments=[
                SubDepartment.from_dict(s) for s in data.get("subDepartments") or []
            ],
            order=_order_value(data),
        )


@dataclass
class KnowledgeTree:
    """The whole knowledge base."""

    departments: list[Department] = field(default_factory=list)
    version: str = ""
    last_modified: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "departments": [dept.to_dict() for dept in self.departments],
            "version": self.version,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeTree":
        """Create from dictionary."""
        return cls(
            departments=[Department.from_dict(d) for d in data.get("departments") or []],
            version=data.get("version", ""),
            last_modified=data.get("lastModified", ""),
        )

    def iter_workflows(self):
        """Yield (department, sub_department, workflow) in tree order."""
        for dept in self.departments:
            for sub in dept.sub_departments:
                for workflow in sub.workflows:
                    yield dept, sub, workflow

    def find_item(self, item_id: str) -> Optional[tuple[Workflow, KnowledgeItem]]:
        """Find an item and the workflow that owns it."""
        for _, _, workflow in self.iter_workflows():
            for item in workflow.items:
                if item.id == item_id:
                    return workflow, item
        return None

    def count_items(self) -> int:
        """Count knowledge items across the tree."""
        return sum(len(wf.items) for _, _, wf in self.iter_workflows())


def workflow_path(department: Department, sub_department: SubDepartment, workflow: Workflow) -> str:
    """Display path of a workflow, e.g. ``"Claims > MMC > Claim Intake"``."""
    return f"{department.name} > {sub_department.name} > {workflow.name}"


@dataclass
class TreeMutationResult:
    """Result of adding, renaming or deleting a tree node."""

    success: bool
    node_type: str = ""
    node_id: str = ""
    tree_version: str = ""
    message: str = ""


@dataclass
class KnowledgeItemResult:
    """Result of adding or updating a knowledge item."""

    success: bool
    item: Optional[KnowledgeItem] = None
    path: str = ""
    updated_fields: list[str] = field(default_factory=list)
    validation_errors: list[str] = field(default_factory=list)
    message: str = ""
