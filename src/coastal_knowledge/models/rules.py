"""Legacy flat rule model.

Predates the knowledge tree: each rule carries its own static department path
instead of living under a workflow node.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .knowledge import CONTENT_TYPE_RULE, PRIORITY_MEDIUM, KnowledgeScope, _order_value, _string_list


@dataclass
class Rule:
    """A flat rule with a static department path."""

    id: str
    title: str
    ai_instructions: str = ""  # Compact imperative rule (<=160 chars)
    content: str = ""  # Full SOP text for human training
    scope: KnowledgeScope = field(default_factory=KnowledgeScope)
    tags: list[str] = field(default_factory=list)
    priority: str = PRIORITY_MEDIUM
    order: int = 1
    version: str = ""
    effective: str = ""
    sunset: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    updated_by: str = ""
    change_note: str = ""
    department_path: list[str] = field(default_factory=list)
    is_active: bool = True

    @property
    def type(self) -> str:
        """Flat rules are always plain rules."""
        return CONTENT_TYPE_RULE

    @property
    def path(self) -> str:
        """Department path joined for display."""
        return " > ".join(self.department_path)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "aiInstructions": self.ai_instructions,
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
            "departmentPath": list(self.department_path),
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        """Create from dictionary."""
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            ai_instructions=data.get("aiInstructions") or "",
            content=data.get("content") or "",
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
            department_path=_string_list(data.get("departmentPath")),
            is_active=data.get("isActive") is True,
        )
