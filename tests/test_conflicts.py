"""Tests for conflict detection."""

from coastal_knowledge.models import LocatedItem
from coastal_knowledge.selection import ConflictStrategy, TokenOverlapStrategy, detect_conflicts

from tests.builders import make_item


def high_rule(item_id: str, instructions: str, **overrides):
    return make_item(item_id, priority="High", ai_instructions=instructions, **overrides)


class TestTokenOverlapStrategy:
    """Tests for the token overlap heuristic."""

    def test_three_shared_long_tokens_conflict(self):
        """Three distinct shared words longer than three characters conflict."""
        strategy = TokenOverlapStrategy()
        a = high_rule("a", "verify lien documents now")
        b = high_rule("b", "please verify lien documents")

        assert strategy.shared_tokens(a, b) == {"verify", "lien", "documents"}
        assert strategy.are_conflicting(a, b) is True

    def test_two_shared_tokens_do_not_conflict(self):
        """Two shared words are below the threshold."""
        strategy = TokenOverlapStrategy()
        a = high_rule("a", "verify lien status")
        b = high_rule("b", "verify lien paperwork")

        assert strategy.are_conflicting(a, b) is False

    def test_short_tokens_ignored(self):
        """Words of three characters or fewer never count."""
        strategy = TokenOverlapStrategy()
        a = high_rule("a", "do not use the old form for new")
        b = high_rule("b", "do not use the old form for new")

        assert strategy.shared_tokens(a, b) == {"form"}
        assert strategy.are_conflicting(a, b) is False

    def test_case_insensitive(self):
        """Tokens are compared case-insensitively."""
        strategy = TokenOverlapStrategy()
        a = high_rule("a", "ALWAYS Verify LIEN")
        b = high_rule("b", "always verify lien")

        assert strategy.are_conflicting(a, b) is True

    def test_repeated_words_counted_once(self):
        """A word repeated in both instructions counts as one shared token."""
        strategy = TokenOverlapStrategy()
        a = high_rule("a", "lien lien lien check")
        b = high_rule("b", "lien lien lien review")

        assert strategy.are_conflicting(a, b) is False

    def test_custom_thresholds(self):
        """Thresholds are configurable."""
        strategy = TokenOverlapStrategy(min_token_length=3, min_shared_tokens=2)
        a = high_rule("a", "get the lien form")
        b = high_rule("b", "file the lien now")

        assert strategy.shared_tokens(a, b) == {"the", "lien"}
        assert strategy.are_conflicting(a, b) is True


class TestDetectConflicts:
    """Tests for detect_conflicts."""

    def test_only_high_priority_rules_compared(self):
        """Medium priority rules and non-rule types are never flagged."""
        text = "Always verify lien documentation before closing file"
        items = [
            high_rule("high", text),
            make_item("medium", priority="Medium", ai_instructions=text),
            make_item("smart", type="smartRule", priority="High", ai_instructions=text, content="Logic"),
        ]

        assert detect_conflicts(items) == []

    def test_rule_without_instructions_skipped(self):
        """High-priority rules without instructions are not compared."""
        items = [high_rule("a", "Always verify lien documentation"), high_rule("b", "")]

        assert detect_conflicts(items) == []

    def test_pairs_in_scan_order(self):
        """Each conflicting pair is reported once, earlier item first."""
        text = "Always verify lien documentation before closing file"
        items = [high_rule("a", text), high_rule("b", text), high_rule("c", text)]

        conflicts = detect_conflicts(items)

        assert [(c.items[0].id, c.items[1].id) for c in conflicts] == [("a", "b"), ("a", "c"), ("b", "c")]

    def test_bare_items_use_unknown_path(self):
        """Items without a location are reported at 'Unknown'."""
        text = "Always verify lien documentation before closing file"

        conflicts = detect_conflicts([high_rule("a", text), high_rule("b", text)])

        assert conflicts[0].path == "Unknown"

    def test_path_comes_from_first_item(self):
        """The conflict path is the first item's location."""
        text = "Always verify lien documentation before closing file"
        items = [
            LocatedItem(item=high_rule("a", text), path="Claims > MMC > Intake"),
            LocatedItem(item=high_rule("b", text), path="Operations > Field > Storm"),
        ]

        conflicts = detect_conflicts(items)

        assert conflicts[0].path == "Claims > MMC > Intake"
        assert conflicts[0].to_dict()["items"][1]["departmentPath"] == "Operations > Field > Storm"

    def test_custom_strategy(self):
        """Any ConflictStrategy can replace the default heuristic."""

        class SameTitleStrategy(ConflictStrategy):
            def are_conflicting(self, a, b):
                return a.title == b.title

        items = [
            high_rule("a", "one thing", title="Liens"),
            high_rule("b", "completely different", title="Liens"),
            high_rule("c", "one thing", title="Roofs"),
        ]

        conflicts = detect_conflicts(items, SameTitleStrategy())

        assert [(c.items[0].id, c.items[1].id) for c in conflicts] == [("a", "b")]

    def test_symmetric(self):
        """Swapping the inputs reports the same pair."""
        strategy = TokenOverlapStrategy()
        a = high_rule("a", "Always verify lien documentation")
        b = high_rule("b", "verify lien documentation always")

        assert strategy.are_conflicting(a, b) == strategy.are_conflicting(b, a)
