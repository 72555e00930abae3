"""Knowledge selection engine."""

from .candidates import (
    CandidateCollector,
    CandidateSet,
    FlatRuleCandidateCollector,
    TreeCandidateCollector,
)
from .conflicts import ConflictStrategy, TokenOverlapStrategy, detect_conflicts
from .filters import check_validity, loose_match, matches_scope, parse_timestamp
from .prompt import generate_knowledge_prompt, generate_rule_prompt
from .selector import run_selection, select_knowledge_items, select_rules

__all__ = [
    # Candidates
    "CandidateCollector",
    "CandidateSet",
    "FlatRuleCandidateCollector",
    "TreeCandidateCollector",
    # Conflicts
    "ConflictStrategy",
    "TokenOverlapStrategy",
    "detect_conflicts",
    # Filters
    "check_validity",
    "loose_match",
    "matches_scope",
    "parse_timestamp",
    # Prompt
    "generate_knowledge_prompt",
    "generate_rule_prompt",
    # Selection
    "run_selection",
    "select_knowledge_items",
    "select_rules",
]
