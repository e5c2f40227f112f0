"""
Draft Editor Tests
==================
Add/edit state machine, validate-before-effect and post-save reset.
"""

import threading

import pytest

from ghrules.constants import MSG_REQUIRED_FIELDS, MSG_SAVE_FAILED
from ghrules.domain.exceptions import ConflictError, ExternalServiceError, NotFoundError, ValidationError
from ghrules.enums.rules import EditorMode, RuleKind
from ghrules.schemas.rules import TimeRule
from ghrules.services.draft_editor import DraftEditor


class TestTransitions:
    def test_start_add_initial_draft(self, loaded, editor):
        assert editor.start_add() is True

        draft = editor.draft
        assert editor.mode == EditorMode.ADDING
        assert editor.editing_id is None
        assert draft.kind == RuleKind.TIME
        assert draft.enabled is True
        assert draft.gh_id == 1
        assert draft.from_comp_id == 7

    def test_start_add_without_greenhouse(self, selector, directory, rule_store, notifications):
        editor = DraftEditor(selector, directory, rule_store, notifications)

        with pytest.raises(ConflictError):
            editor.start_add()
        assert editor.mode == EditorMode.IDLE

    def test_add_and_edit_are_mutually_exclusive(self, loaded, editor):
        editor.start_add()

        assert editor.start_add() is False
        assert editor.start_edit(1) is False
        assert editor.mode == EditorMode.ADDING

    def test_start_edit_copies_rule(self, loaded, editor):
        assert editor.start_edit(1) is True

        assert editor.mode == EditorMode.EDITING
        assert editor.editing_id == 1
        assert editor.draft.name == "Vent"
        assert editor.draft.threshold == 28.0

    def test_start_edit_unknown_rule(self, loaded, editor):
        with pytest.raises(NotFoundError):
            editor.start_edit(404)
        assert editor.mode == EditorMode.IDLE

    def test_cancel_returns_to_idle(self, loaded, editor):
        editor.start_edit(2)
        editor.cancel()

        assert editor.mode == EditorMode.IDLE
        assert editor.draft is None
        assert editor.start_add() is True

    def test_selection_change_discards_draft(self, loaded, editor):
        editor.start_add()
        editor.set_field("name", "Half done")

        loaded.select(2)

        assert editor.mode == EditorMode.IDLE
        assert editor.draft is None

    def test_editing_without_draft(self, loaded, editor):
        with pytest.raises(ConflictError):
            editor.set_field("name", "x")
        with pytest.raises(ConflictError):
            editor.save()

    def test_draft_property_is_a_copy(self, loaded, editor):
        editor.start_add()
        editor.draft.name = "sneaky"

        assert editor.draft.name == ""


class TestFields:
    def test_kind_routed_through_change_kind(self, loaded, editor):
        editor.start_add()
        editor.set_field("kind", "threshold")

        assert editor.draft.kind == RuleKind.THRESHOLD
        assert editor.draft.from_comp_id is None
        assert editor.validate() == ["name", "to_comp_id", "from_comp_id"]

    def test_time_source_follows_directory(self, loaded, editor):
        loaded.select(2)
        editor.start_add()

        assert editor.draft.from_comp_id == 0
        assert editor.source_display() == ""

    def test_time_source_not_editable(self, loaded, editor):
        editor.start_add()

        with pytest.raises(ValidationError):
            editor.set_field("from_comp_id", 5)

    def test_visible_fields_by_kind(self, loaded, editor):
        editor.start_add()
        time_fields = dict(editor.visible_fields())
        editor.change_kind("threshold")
        threshold_fields = dict(editor.visible_fields())

        assert time_fields["time_spec"] is True
        assert time_fields["from_comp_id"] is False
        assert "threshold" not in time_fields
        assert threshold_fields["from_comp_id"] is True
        assert "time_spec" not in threshold_fields

    def test_source_display(self, loaded, editor):
        editor.start_add()

        assert editor.source_display() == "Clock"

    def test_display_reads_wait_for_editor_lock(self, loaded, editor):
        editor.start_add()
        results = []

        def read_views():
            results.append((editor.visible_fields(), editor.source_display()))

        with editor._lock:
            worker = threading.Thread(target=read_views)
            worker.start()
            worker.join(timeout=0.2)
            assert results == []
        worker.join(timeout=5)

        assert len(results) == 1
        assert results[0][1] == "Clock"


class TestSave:
    def test_threshold_scenario(self, loaded, editor, authority, rule_store):
        editor.start_add()
        editor.change_kind("threshold")
        editor.set_field("from_comp_id", 5)
        editor.set_field("operator_", "<")
        editor.set_field("threshold", 20)
        editor.set_field("to_comp_id", 9)
        editor.set_field("name", "Cool down")

        result = editor.save()

        assert result.saved is True
        assert authority.calls_to("create_rule") == [
            (
                1,
                {
                    "gh_id": 1,
                    "name": "Cool down",
                    "kind": "threshold",
                    "from_comp_id": 5,
                    "operator_": "<",
                    "threshold": 20,
                    "to_comp_id": 9,
                    "enabled": True,
                },
            )
        ]
        assert [r.rule_id for r in rule_store.rules].count(result.rule.rule_id) == 1
        assert editor.mode == EditorMode.IDLE

    def test_time_rule_without_time_sensor(self, loaded, editor, rule_store):
        loaded.select(2)
        editor.start_add()
        editor.set_field("name", "Water late")
        editor.set_field("to_comp_id", 22)
        editor.set_field("time_spec", "20:00")

        result = editor.save()

        assert result.saved is True
        assert isinstance(result.rule, TimeRule)
        assert result.rule.from_comp_id == 0
        assert rule_store.get(result.rule.rule_id) is not None

    def test_missing_fields_block_save(self, loaded, editor, authority, notifications):
        editor.start_add()
        editor.change_kind("threshold")
        editor.set_field("name", "Incomplete")

        result = editor.save()

        assert result.saved is False
        assert result.missing == ("to_comp_id", "from_comp_id")
        assert authority.calls_to("create_rule") == []
        assert notifications.latest.message == MSG_REQUIRED_FIELDS
        assert editor.mode == EditorMode.ADDING
        assert editor.draft.name == "Incomplete"

    def test_failed_create_discards_draft(self, loaded, editor, authority, rule_store):
        authority.failures["create_rule"] = ExternalServiceError("500")
        editor.start_add()
        editor.set_field("name", "Night")
        editor.set_field("to_comp_id", 10)
        editor.set_field("time_spec", "22:00")

        result = editor.save()

        assert result.saved is False
        assert result.error == MSG_SAVE_FAILED
        assert editor.mode == EditorMode.IDLE
        assert editor.draft is None
        assert [r.rule_id for r in rule_store.rules] == [1, 2]

    def test_edit_sends_only_changes(self, loaded, editor, authority, rule_store):
        editor.start_edit(1)
        editor.set_field("threshold", 31)

        result = editor.save()

        assert result.saved is True
        assert authority.calls_to("update_rule") == [(1, {"threshold": 31.0})]
        assert rule_store.get(1).threshold == 31.0
        assert editor.mode == EditorMode.IDLE

    def test_edit_kind_switch(self, loaded, editor, authority, rule_store):
        editor.start_edit(1)
        editor.change_kind("time")
        editor.set_field("time_spec", "12:00")

        result = editor.save()

        assert result.saved is True
        assert authority.calls_to("update_rule") == [
            (1, {"kind": "time", "from_comp_id": 7, "time_spec": "12:00", "operator_": None, "threshold": None})
        ]
        assert isinstance(rule_store.get(1), TimeRule)

    def test_unchanged_edit_is_noop(self, loaded, editor, authority):
        editor.start_edit(2)

        result = editor.save()

        assert result.saved is True
        assert result.rule.rule_id == 2
        assert authority.calls_to("update_rule") == []
        assert editor.mode == EditorMode.IDLE

    def test_failed_update_discards_draft(self, loaded, editor, authority, rule_store):
        authority.failures["update_rule"] = ExternalServiceError("500")
        editor.start_edit(1)
        editor.set_field("name", "Renamed")

        result = editor.save()

        assert result.saved is False
        assert editor.mode == EditorMode.IDLE
        assert rule_store.get(1).name == "Vent"
