"""Selection query and result models."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union

from .knowledge import KnowledgeItem
from .rules import Rule

# Either model can flow through the selection pipeline
Selectable = Union[KnowledgeItem, Rule]

CONFLICT_TYPES = ["priority", "scope", "instruction"]
CONFLICT_SEVERITIES = ["error", "warning"]


@dataclass
class RuleSelectionContext:
    """Who is asking and under what circumstances."""

    user_id: str
    user_role: str
    user_department: str
    user_state: Optional[str] = None
    claim_severity: Optional[float] = None
    intent: Optional[str] = None
    workflow_context: Optional[str] = None  # Current workflow being worked on

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleSelectionContext":
        """Create from dictionary."""
        return cls(
            user_id=data.get("user_id", ""),
            user_role=data.get("user_role", ""),
            user_department=data.get("user_department", ""),
            user_state=data.get("user_state") or None,
            claim_severity=data.get("claim_severity"),
            intent=data.get("intent") or None,
            workflow_context=data.get("workflow_context") or None,
        )


@dataclass
class LocatedItem:
    """A selected item paired with the tree path it was reached through.

    The path is derived per query and never written back to the item.
    """

    item: Selectable
    path: str

    @property
    def id(self) -> str:
        return self.item.id

    def to_dict(self) -> dict[str, Any]:
        data = self.item.to_dict()
        data["departmentPath"] = self.path
        return data


@dataclass
class RuleConflict:
    """Pairwise conflict flag raised for human review."""

    items: tuple[LocatedItem, LocatedItem]
    conflict_type: str = "instruction"
    severity: str = "warning"
    path: str = "Unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [located.to_dict() for located in self.items],
            "conflictType": self.conflict_type,
            "severity": self.severity,
            "path": self.path,
        }


@dataclass
class SelectionAuditLog:
    """Record of what was searched and what was returned."""

    selection_criteria: RuleSelectionContext
    candidate_items: list[str] = field(default_factory=list)
    filtered_items: list[str] = field(default_factory=list)
    timestamp: str = ""
    rule_path: str = ""  # Paths searched, joined by "; "
    data_issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selectionCriteria": self.selection_criteria.to_dict(),
            "candidateItems": list(self.candidate_items),
            "filteredItems": list(self.filtered_items),
            "timestamp": self.timestamp,
            "rulePath": self.rule_path,
            "dataIssues": list(self.data_issues),
        }


@dataclass
class RuleSelectionResult:
    """Output of a selection run."""

    selected_items: list[LocatedItem]
    conflicts: list[RuleConflict]
    audit_log: SelectionAuditLog

    def to_dict(self) -> dict[str, Any]:
        return {
            "selectedItems": [located.to_dict() for located in self.selected_items],
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
            "auditLog": self.audit_log.to_dict(),
        }


@dataclass
class SelectKnowledgeResult:
    """Result of the select_knowledge / select_rules tools."""

    success: bool
    selection: Optional[RuleSelectionResult] = None
    prompt: str = ""
    message: str = ""


@dataclass
class ReviewConflictsResult:
    """Result of an admin conflict review."""

    success: bool
    reviewed_count: int = 0
    conflicts: list[RuleConflict] = field(default_factory=list)
    message: str = ""
