"""Coastal Knowledge data models."""

from .knowledge import (
    CONTENT_TYPES,
    MAX_RULE_INSTRUCTION_LENGTH,
    PRIORITIES,
    PRIORITY_RANK,
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
from .rules import Rule
from .selection import (
    LocatedItem,
    ReviewConflictsResult,
    RuleConflict,
    RuleSelectionContext,
    RuleSelectionResult,
    SelectionAuditLog,
    SelectKnowledgeResult,
)
from .session import (
    HANDOFF_TYPES,
    AssistantSessionMemory,
    HandoffContextResult,
    HandoffRecord,
    SessionMemoryResult,
)
from .setup import ConfigureResult, GetSetupStatusResult, SettingStatus

__all__ = [
    # Knowledge tree
    "CONTENT_TYPES",
    "MAX_RULE_INSTRUCTION_LENGTH",
    "PRIORITIES",
    "PRIORITY_RANK",
    "Department",
    "KnowledgeItem",
    "KnowledgeItemResult",
    "KnowledgeScope",
    "KnowledgeTree",
    "SubDepartment",
    "TreeMutationResult",
    "Workflow",
    "workflow_path",
    # Legacy rules
    "Rule",
    # Selection
    "LocatedItem",
    "ReviewConflictsResult",
    "RuleConflict",
    "RuleSelectionContext",
    "RuleSelectionResult",
    "SelectionAuditLog",
    "SelectKnowledgeResult",
    # Session
    "HANDOFF_TYPES",
    "AssistantSessionMemory",
    "HandoffContextResult",
    "HandoffRecord",
    "SessionMemoryResult",
    # Setup
    "ConfigureResult",
    "GetSetupStatusResult",
    "SettingStatus",
]
