"""Tests for TreeTools."""

from datetime import date

import pytest

from coastal_knowledge.tools.tree_tools import next_version

TODAY = date.today().isoformat()


def add_rule(tree_tools, **overrides):
    fields = {
        "workflow_id": "claim-intake",
        "title": "Verify liens",
        "type": "rule",
        "ai_instructions": "Always verify lien documentation before proceeding.",
        "priority": "High",
    }
    fields.update(overrides)
    return tree_tools.add_knowledge_item(**fields)


class TestNextVersion:
    """Tests for version stamping."""

    def test_same_day_increments(self):
        assert next_version("v2025-06-14-002", date(2025, 6, 14)) == "v2025-06-14-003"

    def test_new_day_restarts(self):
        assert next_version("v2025-06-14-002", date(2025, 6, 15)) == "v2025-06-15-001"

    @pytest.mark.parametrize("current", ["", "1.0", "v2025-06-14"])
    def test_unrecognized_restarts(self, current):
        assert next_version(current, date(2025, 6, 15)) == "v2025-06-15-001"


class TestNodeOperations:
    """Tests for department / sub-department / workflow editing."""

    def test_add_department(self, tree_tools):
        """A new department is appended and the tree version bumped."""
        result = tree_tools.add_department("Legal", "Legal review")

        assert result.success is True
        assert result.node_id.startswith("dept-")
        assert result.tree_version == f"v{TODAY}-001"

        tree = tree_tools.get_tree()
        assert tree.departments[-1].name == "Legal"
        assert tree.departments[-1].order == 12
        assert tree.version == result.tree_version
        assert tree.last_modified

    def test_add_department_requires_name(self, tree_tools):
        """A blank name is rejected."""
        result = tree_tools.add_department("  ")

        assert result.success is False
        assert "required" in result.message

    def test_add_sub_department_and_workflow(self, tree_tools):
        """Sub-departments and workflows nest under their parents."""
        sub = tree_tools.add_sub_department("claims", "Catastrophe")
        workflow = tree_tools.add_workflow("claims", sub.node_id, "Hurricane Intake")

        assert sub.success is True
        assert sub.node_id.startswith("subdept-")
        assert workflow.success is True
        assert workflow.node_id.startswith("workflow-")

        claims = next(d for d in tree_tools.get_tree().departments if d.id == "claims")
        new_sub = claims.sub_departments[-1]
        assert new_sub.name == "Catastrophe"
        assert [w.name for w in new_sub.workflows] == ["Hurricane Intake"]

    def test_add_sub_department_unknown_department(self, tree_tools):
        """Unknown parents are reported."""
        result = tree_tools.add_sub_department("nope", "Anything")

        assert result.success is False
        assert "nope" in result.message

    def test_add_workflow_unknown_sub_department(self, tree_tools):
        """A sub-department from another department is not accepted."""
        result = tree_tools.add_workflow("it", "mmc-adjusters", "Anything")

        assert result.success is False

    @pytest.mark.parametrize(
        "node_type,node_id",
        [
            ("department", "claims"),
            ("subDepartment", "mmc-adjusters"),
            ("workflow", "claim-intake"),
        ],
    )
    def test_rename_node(self, tree_tools, node_type, node_id):
        """Each node type can be renamed."""
        result = tree_tools.rename_node(node_type, node_id, "Renamed")

        assert result.success is True
        tree = tree_tools.get_tree()
        names = [
            obj.name
            for d, s, w in tree.iter_workflows()
            for obj in (d, s, w)
            if obj.id == node_id
        ]
        assert names and set(names) == {"Renamed"}

    def test_rename_invalid_type(self, tree_tools):
        """Unknown node types are rejected."""
        result = tree_tools.rename_node("item", "claims", "Renamed")

        assert result.success is False
        assert "Invalid node type" in result.message

    def test_delete_node_removes_subtree(self, tree_tools):
        """Deleting a sub-department removes its workflows and items."""
        added = add_rule(tree_tools)

        result = tree_tools.delete_node("subDepartment", "mmc-adjusters")

        assert result.success is True
        tree = tree_tools.get_tree()
        assert tree.find_item(added.item.id) is None
        claims = next(d for d in tree.departments if d.id == "claims")
        assert "mmc-adjusters" not in [s.id for s in claims.sub_departments]

    def test_delete_missing_node(self, tree_tools):
        """Deleting an unknown node fails without changing the tree."""
        before = tree_tools.get_tree().version

        result = tree_tools.delete_node("workflow", "missing")

        assert result.success is False
        assert tree_tools.get_tree().version == before

    def test_save_failure_reported(self, tree_tools, mock_memory_client):
        """A failed write is surfaced."""
        tree_tools.get_tree()
        mock_memory_client.fail_writes = True

        result = tree_tools.add_department("Legal")

        assert result.success is False
        assert "save" in result.message


class TestAddKnowledgeItem:
    """Tests for add_knowledge_item."""

    def test_add_rule(self, tree_tools):
        """A valid rule is stored under its workflow with audit fields."""
        result = add_rule(tree_tools, tags=[" lien ", "lien", "", "title"])

        assert result.success is True
        item = result.item
        assert item.id.startswith("item-")
        assert item.version == f"v{TODAY}-001"
        assert item.effective == TODAY
        assert item.updated_by == "test_user"
        assert item.tags == ["lien", "title"]
        assert result.path == "Claims > MMC (Management Monitored Claims) Public Adjusters > Claim Intake"

        workflow, stored = tree_tools.get_tree().find_item(item.id)
        assert workflow.id == "claim-intake"
        assert stored == item

    def test_rule_instruction_length_limit(self, tree_tools):
        """Rule instructions over 160 characters are rejected."""
        result = add_rule(tree_tools, ai_instructions="x" * 161)

        assert result.success is False
        assert any("160" in e for e in result.validation_errors)

    def test_rule_instruction_at_limit(self, tree_tools):
        """Exactly 160 characters is accepted."""
        assert add_rule(tree_tools, ai_instructions="x" * 160).success is True

    def test_command_requires_body(self, tree_tools):
        """Commands need a command body."""
        result = add_rule(tree_tools, type="command", ai_instructions=None, title="Open claim")

        assert result.success is False
        assert any("commandBody" in e for e in result.validation_errors)

    def test_content_fields_follow_type(self, tree_tools):
        """Only the fields used by the item type are kept."""
        result = add_rule(
            tree_tools,
            type="command",
            title="Open claim",
            command_body="/claim open",
            content="ignored",
        )

        assert result.success is True
        assert result.item.command_body == "/claim open"
        assert result.item.ai_instructions is None
        assert result.item.content is None

    def test_sop_requires_content(self, tree_tools):
        """SOPs need content."""
        result = add_rule(tree_tools, type="sop", ai_instructions=None)

        assert result.success is False

    def test_invalid_enums(self, tree_tools):
        """Unknown type and priority are rejected."""
        result = add_rule(tree_tools, type="memo", priority="Urgent")

        assert result.success is False
        assert len(result.validation_errors) == 2

    def test_invalid_dates(self, tree_tools):
        """Unparsable or inverted dates are rejected at entry time."""
        bad = add_rule(tree_tools, effective="soon")
        inverted = add_rule(tree_tools, effective="2025-06-10", sunset="2025-06-01")

        assert bad.success is False
        assert inverted.success is False
        assert any("after" in e for e in inverted.validation_errors)

    def test_negative_severity_rejected(self, tree_tools):
        """A negative severity cap is rejected."""
        result = add_rule(tree_tools, scope={"severity_max": -1})

        assert result.success is False

    def test_scope_labels_cleaned(self, tree_tools):
        """Scope roles and states are trimmed and de-duplicated."""
        result = add_rule(tree_tools, scope={"role": ["PA ", "PA", " "], "state": ["FL"]})

        assert result.item.scope.role == ["PA"]
        assert result.item.scope.state == ["FL"]

    def test_unknown_workflow(self, tree_tools):
        """Adding to an unknown workflow fails."""
        result = add_rule(tree_tools, workflow_id="missing")

        assert result.success is False
        assert "missing" in result.message


class TestUpdateKnowledgeItem:
    """Tests for update_knowledge_item."""

    def test_update_bumps_version(self, tree_tools):
        """Changed fields are reported and the item version bumped."""
        item = add_rule(tree_tools).item

        result = tree_tools.update_knowledge_item(
            item.id,
            {"priority": "Low", "order": 3},
            change_note="Demoted",
            user="editor",
        )

        assert result.success is True
        assert result.updated_fields == ["priority", "order"]
        assert result.item.version == f"v{TODAY}-002"
        assert result.item.updated_by == "editor"
        assert result.item.change_note == "Demoted"
        assert result.item.created_at == item.created_at

        _, stored = tree_tools.get_tree().find_item(item.id)
        assert stored.priority == "Low"
        assert stored.order == 3

    def test_no_changes(self, tree_tools):
        """Updating to identical values leaves the version alone."""
        item = add_rule(tree_tools).item

        result = tree_tools.update_knowledge_item(item.id, {"priority": "High"})

        assert result.success is True
        assert result.updated_fields == []
        assert result.item.version == item.version

    def test_invalid_update_not_saved(self, tree_tools):
        """A failing update leaves the stored item unchanged."""
        item = add_rule(tree_tools).item

        result = tree_tools.update_knowledge_item(item.id, {"ai_instructions": "y" * 200})

        assert result.success is False
        _, stored = tree_tools.get_tree().find_item(item.id)
        assert stored.ai_instructions == item.ai_instructions

    def test_unknown_field(self, tree_tools):
        """Fields outside the editable set are rejected."""
        item = add_rule(tree_tools).item

        result = tree_tools.update_knowledge_item(item.id, {"id": "other"})

        assert result.success is False
        assert "id" in result.message

    def test_unknown_item(self, tree_tools):
        """Updating an unknown item fails."""
        result = tree_tools.update_knowledge_item("missing", {"priority": "Low"})

        assert result.success is False

    def test_deactivate(self, tree_tools):
        """The kill switch can be flipped through an update."""
        item = add_rule(tree_tools).item

        result = tree_tools.update_knowledge_item(item.id, {"is_active": False})

        assert result.success is True
        assert tree_tools.get_tree().find_item(item.id)[1].is_active is False


class TestDeleteKnowledgeItem:
    """Tests for delete_knowledge_item."""

    def test_delete(self, tree_tools):
        """A deleted item is gone from the tree."""
        item = add_rule(tree_tools).item

        result = tree_tools.delete_knowledge_item(item.id)

        assert result.success is True
        assert tree_tools.get_tree().find_item(item.id) is None

    def test_delete_missing(self, tree_tools):
        """Deleting an unknown item fails."""
        assert tree_tools.delete_knowledge_item("missing").success is False


class TestEditedTreeSelection:
    """Edits are visible to selection."""

    def test_added_rule_is_selected(self, tree_tools, selection_tools):
        """A rule added through the editor is selected for its department."""
        add_rule(tree_tools, effective="2020-01-01")

        result = selection_tools.select_knowledge(
            user_id="u1",
            user_role="PA",
            user_department="Claims",
        )

        assert [located.item.title for located in result.selection.selected_items] == ["Verify liens"]
        assert "1. Always verify lien documentation before proceeding." in result.prompt
