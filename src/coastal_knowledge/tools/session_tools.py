"""Assistant session memory tools for Coastal Knowledge."""

import logging
import random
import string
import time
from datetime import datetime, timedelta
from typing import Optional

from ..integrations import MemoryClient
from ..models import (
    HANDOFF_TYPES,
    AssistantSessionMemory,
    HandoffContextResult,
    HandoffRecord,
    SessionMemoryResult,
)

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "coastal:session:"

# Number of previous assistants listed in a handoff prompt
RECENT_CHAIN_LENGTH = 3

_SESSION_ID_CHARS = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """Generate ``session_<epoch-ms>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_SESSION_ID_CHARS, k=9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionTools:
    """Tools for sharing context between assistants in one chat session."""

    def __init__(
        self,
        memory_client: MemoryClient,
        ttl_hours: int = 24,
        max_history: int = 20,
    ):
        """Initialize session tools.

        Args:
            memory_client: Key/value store for session state
            ttl_hours: Session lifetime, extended on every update
            max_history: Handoffs allowed before a session is invalid
        """
        self.memory = memory_client
        self.ttl = timedelta(hours=ttl_hours)
        self.max_history = max_history

    def _key(self, session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    def _save(self, session: AssistantSessionMemory) -> bool:
        result = self.memory.set(self._key(session.session_id), session.to_dict())
        if not result.success:
            logger.error(f"Failed to save session {session.session_id}: {result.message}")
        return result.success

    def _load(self, session_id: str) -> Optional[AssistantSessionMemory]:
        """Load a live session; expired sessions are deleted."""
        data = self.memory.get_json(self._key(session_id))
        if not isinstance(data, dict):
            return None

        session = AssistantSessionMemory.from_dict(data)
        if session.is_expired():
            logger.info(f"Session expired: {session_id}")
            self.memory.delete(self._key(session_id))
            return None
        return session

    def create_session(
        self,
        user_id: str,
        claim_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> SessionMemoryResult:
        """Start a new session.

        Args:
            user_id: Session owner
            claim_id: Claim being worked on
            session_id: Explicit id (default: generated)

        Returns:
            SessionMemoryResult
        """
        now = datetime.now()
        session = AssistantSessionMemory(
            session_id=session_id or generate_session_id(),
            user_id=user_id,
            claim_id=claim_id or None,
            created_at=now.isoformat(),
            last_updated=now.isoformat(),
            expires_at=(now + self.ttl).isoformat(),
        )

        if not self._save(session):
            return SessionMemoryResult(success=False, message="Failed to save session")

        logger.info(f"Session created: {session.session_id} (user: {user_id})")
        return SessionMemoryResult(
            success=True,
            session=session,
            message=f"Session {session.session_id} started.",
        )

    def get_session(self, session_id: str) -> SessionMemoryResult:
        """Get a live session."""
        session = self._load(session_id)
        if session is None:
            return SessionMemoryResult(success=False, message=f"Session not found or expired: {session_id}")
        return SessionMemoryResult(success=True, session=session)

    def update_session(
        self,
        session_id: str,
        claim_id: Optional[str] = None,
        policy_review_summary: Optional[str] = None,
        scope_notes: Optional[str] = None,
        estimate_details: Optional[str] = None,
    ) -> SessionMemoryResult:
        """Update session summaries and extend its expiry.

        Only the arguments that are given are changed.
        """
        session = self._load(session_id)
        if session is None:
            return SessionMemoryResult(success=False, message=f"Session not found or expired: {session_id}")

        if claim_id is not None:
            session.claim_id = claim_id
        if policy_review_summary is not None:
            session.policy_review_summary = policy_review_summary
        if scope_notes is not None:
            session.scope_notes = scope_notes
        if estimate_details is not None:
            session.estimate_details = estimate_details

        return self._touch(session, "Session updated.")

    def _touch(self, session: AssistantSessionMemory, message: str) -> SessionMemoryResult:
        now = datetime.now()
        session.last_updated = now.isoformat()
        session.expires_at = (now + self.ttl).isoformat()

        if not self._save(session):
            return SessionMemoryResult(success=False, message="Failed to save session")

        logger.debug(f"Session updated: {session.session_id}")
        return SessionMemoryResult(success=True, session=session, message=message)

    def reset_session(self, session_id: str) -> SessionMemoryResult:
        """Delete a session."""
        result = self.memory.delete(self._key(session_id))
        if not result.success:
            return SessionMemoryResult(success=False, message=result.message)

        logger.info(f"Session reset: {session_id}")
        return SessionMemoryResult(success=True, message=f"Session {session_id} reset.")

    def add_to_history(
        self,
        session_id: str,
        assistant: str,
        context: str = "",
        handoff_type: str = "automatic",
    ) -> SessionMemoryResult:
        """Record that ``assistant`` took over the session.

        Args:
            session_id: Session
            assistant: Assistant name (e.g. "CCS Policy Pro")
            context: Free-text reason or summary
            handoff_type: automatic / manual / timeout

        Returns:
            SessionMemoryResult
        """
        if handoff_type not in HANDOFF_TYPES:
            return SessionMemoryResult(
                success=False,
                message=f"Invalid handoff type. Valid types: {', '.join(HANDOFF_TYPES)}",
            )

        session = self._load(session_id)
        if session is None:
            return SessionMemoryResult(success=False, message=f"Session not found or expired: {session_id}")

        session.ai_history.append(
            HandoffRecord(
                assistant=assistant,
                timestamp=datetime.now().isoformat(),
                context=context,
                handoff_type=handoff_type,
            )
        )
        return self._touch(session, f"Handoff to {assistant} recorded.")

    def validate_session(self, session: AssistantSessionMemory) -> bool:
        """Check the session is neither expired nor over its history limit."""
        expired = session.is_expired()
        history_too_long = len(session.ai_history) > self.max_history

        if expired or history_too_long:
            logger.info(
                f"Session validation failed: {session.session_id} "
                f"(expired={expired}, history_too_long={history_too_long})"
            )
            return False
        return True

    def inject_to_prompt(self, session_id: str, target_assistant: str) -> HandoffContextResult:
        """Build the context block handed to the next assistant.

        Args:
            session_id: Session
            target_assistant: Assistant receiving the handoff

        Returns:
            HandoffContextResult; ``context_prompt`` is empty for unknown or
            invalid sessions.
        """
        session = self._load(session_id)
        if session is None or not self.validate_session(session):
            return HandoffContextResult(
                success=False,
                session_id=session_id,
                target_assistant=target_assistant,
                message=f"No valid session: {session_id}",
            )

        sections = []
        summary = session.policy_review_summary

        if target_assistant == "CCS Policy Pro" and summary:
            sections.append(f"Previous Policy Review: {summary}")
        elif target_assistant == "CCS Scope Pro" and summary:
            sections.append(f"Policy Review Summary: {summary}")
        elif target_assistant == "Claims Processor":
            if summary:
                sections.append(f"Policy Review: {summary}")
            if session.scope_notes:
                sections.append(f"Scope Notes: {session.scope_notes}")

        recent = session.ai_history[-RECENT_CHAIN_LENGTH:]
        if recent:
            chain = " → ".join(record.assistant for record in recent)
            sections.append(f"Recent Assistant Chain: {chain}")

        context_prompt = "".join(f"{section}\n\n" for section in sections)

        return HandoffContextResult(
            success=True,
            session_id=session_id,
            target_assistant=target_assistant,
            context_prompt=context_prompt,
            message=f"Built handoff context for {target_assistant}.",
        )

    def list_active_sessions(self) -> list[AssistantSessionMemory]:
        """List stored sessions that are still valid."""
        sessions = []
        for key in self.memory.list_keys(SESSION_KEY_PREFIX):
            data = self.memory.get_json(key)
            if not isinstance(data, dict):
                continue
            session = AssistantSessionMemory.from_dict(data)
            if self.validate_session(session):
                sessions.append(session)
        return sessions
