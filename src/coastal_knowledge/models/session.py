"""Assistant session memory models."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

HANDOFF_TYPES = ["automatic", "manual", "timeout"]


@dataclass
class HandoffRecord:
    """One hop in the assistant chain."""

    assistant: str
    timestamp: str
    context: str = ""
    handoff_type: str = "automatic"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HandoffRecord":
        return cls(
            assistant=data.get("assistant", ""),
            timestamp=data.get("timestamp", ""),
            context=data.get("context", ""),
            handoff_type=data.get("handoff_type", "automatic"),
        )


@dataclass
class AssistantSessionMemory:
    """Context carried between assistants during one chat session."""

    session_id: str
    user_id: str
    claim_id: Optional[str] = None
    created_at: str = ""
    last_updated: str = ""
    expires_at: str = ""
    policy_review_summary: Optional[str] = None
    scope_notes: Optional[str] = None
    estimate_details: Optional[str] = None
    ai_history: list[HandoffRecord] = field(default_factory=list)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the session is past its expiry time."""
        now = now or datetime.now()
        try:
            return now > datetime.fromisoformat(self.expires_at)
        except (TypeError, ValueError):
            return True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssistantSessionMemory":
        """Create from dictionary."""
        return cls(
            session_id=data.get("session_id", ""),
            user_id=data.get("user_id", ""),
            claim_id=data.get("claim_id"),
            created_at=data.get("created_at", ""),
            last_updated=data.get("last_updated", ""),
            expires_at=data.get("expires_at", ""),
            policy_review_summary=data.get("policy_review_summary"),
            scope_notes=data.get("scope_notes"),
            estimate_details=data.get("estimate_details"),
            ai_history=[HandoffRecord.from_dict(h) for h in data.get("ai_history", [])],
        )


@dataclass
class SessionMemoryResult:
    """Result of a session memory operation."""

    success: bool
    session: Optional[AssistantSessionMemory] = None
    message: str = ""


@dataclass
class HandoffContextResult:
    """Result of building the handoff context for the next assistant."""

    success: bool
    session_id: str = ""
    target_assistant: str = ""
    context_prompt: str = ""
    message: str = ""
