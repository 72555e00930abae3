"""Scope and validity filters applied to selection candidates."""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..models.knowledge import KnowledgeScope
from ..models.selection import RuleSelectionContext, Selectable

logger = logging.getLogger(__name__)


def loose_match(left: str, right: str) -> bool:
    """Case-insensitive substring match in either direction.

    An empty string is contained in every name, so it always matches.
    """
    a = (left or "").lower()
    b = (right or "").lower()
    return a in b or b in a


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Bare dates are midnight UTC. Returns None when the value cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def matches_scope(scope: KnowledgeScope, context: RuleSelectionContext) -> bool:
    """Check an item's scope against the request context."""
    # Role whitelist, exact match
    if scope.role and context.user_role not in scope.role:
        return False

    # State whitelist, only when the caller told us their state
    if context.user_state and scope.state and context.user_state not in scope.state:
        return False

    # Severity cap
    if (
        context.claim_severity is not None
        and scope.severity_max is not None
        and context.claim_severity > scope.severity_max
    ):
        return False

    return True


def check_validity(item: Selectable, now: datetime) -> tuple[bool, Optional[str]]:
    """Check the kill switch and the effective/sunset window.

    Returns:
        (is_valid, data_issue). ``data_issue`` describes an unparsable date;
        such items are treated as not currently valid.
    """
    if not item.is_active:
        return False, None

    effective = parse_timestamp(item.effective)
    if effective is None:
        issue = f"Item '{item.id}' has an unparsable effective date: {item.effective!r}"
        logger.warning(issue)
        return False, issue

    if effective > now:
        return False, None

    if item.sunset:
        sunset = parse_timestamp(item.sunset)
        if sunset is None:
            issue = f"Item '{item.id}' has an unparsable sunset date: {item.sunset!r}"
            logger.warning(issue)
            return False, issue
        if sunset <= now:
            return False, None

    return True, None
