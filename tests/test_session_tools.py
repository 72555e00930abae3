"""Tests for SessionTools."""

import re
from datetime import datetime, timedelta

from coastal_knowledge.tools.session_tools import SESSION_KEY_PREFIX, generate_session_id


def expire(mock_memory_client, session_id):
    """Move a stored session's expiry into the past."""
    key = f"{SESSION_KEY_PREFIX}{session_id}"
    data = mock_memory_client.get_json(key)
    data["expires_at"] = (datetime.now() - timedelta(minutes=1)).isoformat()
    mock_memory_client.set(key, data)


class TestSessionIds:
    """Tests for session id generation."""

    def test_format(self):
        """Ids are session_<epoch ms>_<9 base36 chars>."""
        assert re.fullmatch(r"session_\d{13}_[0-9a-z]{9}", generate_session_id())

    def test_unique(self):
        """Consecutive ids differ."""
        assert generate_session_id() != generate_session_id()


class TestCreateAndGet:
    """Tests for create_session and get_session."""

    def test_create_session(self, session_tools):
        """A new session expires one TTL after creation."""
        result = session_tools.create_session("user-1", claim_id="CLM-42")

        assert result.success is True
        session = result.session
        assert session.user_id == "user-1"
        assert session.claim_id == "CLM-42"
        assert session.ai_history == []
        created = datetime.fromisoformat(session.created_at)
        expires = datetime.fromisoformat(session.expires_at)
        assert expires - created == timedelta(hours=24)

    def test_get_session(self, session_tools):
        """A stored session is returned."""
        created = session_tools.create_session("user-1", session_id="session_fixed").session

        result = session_tools.get_session("session_fixed")

        assert result.success is True
        assert result.session == created

    def test_get_missing_session(self, session_tools):
        """Unknown sessions are reported."""
        result = session_tools.get_session("missing")

        assert result.success is False
        assert result.session is None

    def test_expired_session_deleted(self, session_tools, mock_memory_client):
        """Reading an expired session removes it."""
        session_tools.create_session("user-1", session_id="old")
        expire(mock_memory_client, "old")

        result = session_tools.get_session("old")

        assert result.success is False
        assert mock_memory_client.list_keys(SESSION_KEY_PREFIX) == []


class TestUpdateSession:
    """Tests for update_session and reset_session."""

    def test_update_sets_given_fields_only(self, session_tools):
        """Only provided fields change."""
        session_tools.create_session("user-1", claim_id="CLM-1", session_id="s1")

        result = session_tools.update_session("s1", policy_review_summary="HO-3, wind covered")

        assert result.success is True
        assert result.session.policy_review_summary == "HO-3, wind covered"
        assert result.session.claim_id == "CLM-1"
        assert result.session.scope_notes is None

    def test_update_extends_expiry(self, session_tools, mock_memory_client):
        """Updating pushes the expiry out by a full TTL."""
        original = session_tools.create_session("user-1", session_id="s1").session
        key = f"{SESSION_KEY_PREFIX}s1"
        data = mock_memory_client.get_json(key)
        data["expires_at"] = (datetime.now() + timedelta(hours=1)).isoformat()
        mock_memory_client.set(key, data)

        updated = session_tools.update_session("s1", scope_notes="Roof only").session

        assert datetime.fromisoformat(updated.expires_at) >= datetime.fromisoformat(original.expires_at)

    def test_update_missing_session(self, session_tools):
        """Updating an unknown session fails."""
        assert session_tools.update_session("missing", scope_notes="x").success is False

    def test_reset_session(self, session_tools):
        """A reset session is gone."""
        session_tools.create_session("user-1", session_id="s1")

        assert session_tools.reset_session("s1").success is True
        assert session_tools.get_session("s1").success is False


class TestHistory:
    """Tests for add_to_history and validate_session."""

    def test_add_to_history(self, session_tools):
        """Handoffs are appended in order."""
        session_tools.create_session("user-1", session_id="s1")

        session_tools.add_to_history("s1", "CCS Policy Pro", "Policy reviewed")
        result = session_tools.add_to_history("s1", "CCS Scope Pro", handoff_type="manual")

        history = result.session.ai_history
        assert [h.assistant for h in history] == ["CCS Policy Pro", "CCS Scope Pro"]
        assert history[0].context == "Policy reviewed"
        assert history[1].handoff_type == "manual"

    def test_invalid_handoff_type(self, session_tools):
        """Unknown handoff types are rejected."""
        session_tools.create_session("user-1", session_id="s1")

        result = session_tools.add_to_history("s1", "CCS Scope Pro", handoff_type="forced")

        assert result.success is False

    def test_history_limit(self, mock_memory_client):
        """A session with more handoffs than allowed is invalid."""
        from coastal_knowledge.tools.session_tools import SessionTools

        tools = SessionTools(mock_memory_client, max_history=2)
        tools.create_session("user-1", session_id="s1")
        for assistant in ["A", "B"]:
            tools.add_to_history("s1", assistant)
        assert tools.validate_session(tools.get_session("s1").session) is True

        tools.add_to_history("s1", "C")

        assert tools.validate_session(tools.get_session("s1").session) is False

    def test_list_active_sessions(self, session_tools, mock_memory_client):
        """Expired sessions are left out of the active list."""
        session_tools.create_session("user-1", session_id="live")
        session_tools.create_session("user-2", session_id="stale")
        expire(mock_memory_client, "stale")

        active = session_tools.list_active_sessions()

        assert [s.session_id for s in active] == ["live"]


class TestInjectToPrompt:
    """Tests for inject_to_prompt."""

    def _session(self, session_tools, **fields):
        session_tools.create_session("user-1", session_id="s1")
        if fields:
            session_tools.update_session("s1", **fields)

    def test_policy_pro(self, session_tools):
        """CCS Policy Pro gets the previous policy review."""
        self._session(session_tools, policy_review_summary="Wind covered")

        result = session_tools.inject_to_prompt("s1", "CCS Policy Pro")

        assert result.success is True
        assert result.context_prompt == "Previous Policy Review: Wind covered\n\n"

    def test_scope_pro(self, session_tools):
        """CCS Scope Pro gets the policy review summary."""
        self._session(session_tools, policy_review_summary="Wind covered", scope_notes="Roof")

        result = session_tools.inject_to_prompt("s1", "CCS Scope Pro")

        assert result.context_prompt == "Policy Review Summary: Wind covered\n\n"

    def test_claims_processor(self, session_tools):
        """Claims Processor gets both the policy review and scope notes."""
        self._session(session_tools, policy_review_summary="Wind covered", scope_notes="Roof")

        result = session_tools.inject_to_prompt("s1", "Claims Processor")

        assert result.context_prompt == "Policy Review: Wind covered\n\nScope Notes: Roof\n\n"

    def test_recent_chain_last_three(self, session_tools):
        """Only the last three assistants are listed."""
        self._session(session_tools)
        for assistant in ["A", "B", "C", "D"]:
            session_tools.add_to_history("s1", assistant)

        result = session_tools.inject_to_prompt("s1", "Other Assistant")

        assert result.context_prompt == "Recent Assistant Chain: B → C → D\n\n"

    def test_empty_session(self, session_tools):
        """A session with nothing to share gives an empty prompt."""
        self._session(session_tools)

        result = session_tools.inject_to_prompt("s1", "CCS Policy Pro")

        assert result.success is True
        assert result.context_prompt == ""

    def test_missing_session(self, session_tools):
        """Unknown sessions give an empty prompt."""
        result = session_tools.inject_to_prompt("missing", "CCS Policy Pro")

        assert result.success is False
        assert result.context_prompt == ""
