"""
Draft Editor
============

State machine for the transient add/edit workflow of a single rule::

    IDLE --start_add()--------> ADDING --save()/cancel()--> IDLE
    IDLE --start_edit(rule_id)-> EDITING(rule_id) --save()/cancel()--> IDLE

At most one draft is active per editor. A save is validated before any
request is made; a draft with missing fields is kept for correction. Once a
request was sent the draft is discarded whatever the outcome, so a failed
save never leaves a half-applied draft around.

A change of the active greenhouse cancels the active draft.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ghrules.constants import MSG_REQUIRED_FIELDS, MSG_SAVE_FAILED, NO_SOURCE_COMPONENT
from ghrules.domain.draft import RuleDraft
from ghrules.domain.exceptions import ConflictError, NotFoundError
from ghrules.enums.events import GreenhouseEvent
from ghrules.enums.rules import EditorMode, RuleKind
from ghrules.schemas.rules import ThresholdRule, TimeRule
from ghrules.services.component_directory import ComponentDirectory
from ghrules.services.greenhouse_selector import GreenhouseSelector
from ghrules.services.notifications import NotificationCenter
from ghrules.services.rule_store import RuleStore
from ghrules.utils.concurrency import synchronized
from ghrules.utils.event_bus import EventBus

logger = logging.getLogger(__name__)

# Field name -> editable, per kind, in display order
_VISIBLE_FIELDS: Dict[RuleKind, Tuple[Tuple[str, bool], ...]] = {
    RuleKind.TIME: (
        ("name", True),
        ("kind", True),
        ("time_spec", True),
        ("from_comp_id", False),
        ("to_comp_id", True),
        ("enabled", True),
    ),
    RuleKind.THRESHOLD: (
        ("name", True),
        ("kind", True),
        ("from_comp_id", True),
        ("operator_", True),
        ("threshold", True),
        ("to_comp_id", True),
        ("enabled", True),
    ),
}


@dataclass(frozen=True)
class SaveResult:
    """Outcome of :meth:`DraftEditor.save`."""

    saved: bool
    rule: Optional[ThresholdRule | TimeRule] = None
    missing: Tuple[str, ...] = ()
    error: Optional[str] = None


class DraftEditor:
    def __init__(
        self,
        selector: GreenhouseSelector,
        directory: ComponentDirectory,
        rule_store: RuleStore,
        notifications: NotificationCenter,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.selector = selector
        self.directory = directory
        self.rule_store = rule_store
        self.notifications = notifications

        self._lock = threading.RLock()
        self._mode = EditorMode.IDLE
        self._editing_id: Optional[int] = None
        self._draft: Optional[RuleDraft] = None

        if event_bus is not None:
            event_bus.subscribe(GreenhouseEvent.SELECTION_CHANGED, self._on_selection_changed)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def editing_id(self) -> Optional[int]:
        return self._editing_id

    @property
    def draft(self) -> Optional[RuleDraft]:
        """A copy of the active draft; edits go through :meth:`set_field`."""
        with self._lock:
            return self._draft.copy() if self._draft is not None else None

    @property
    def is_active(self) -> bool:
        return self._draft is not None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    @synchronized
    def start_add(self) -> bool:
        """
        Begin a new time-rule draft for the active greenhouse.

        Returns:
            False when another draft is already active.

        Raises:
            ConflictError: No greenhouse is selected.
        """
        if self.is_active:
            logger.warning("Cannot start adding: a draft is already active (%s)", self._mode)
            return False
        gh_id = self.selector.active_id
        if gh_id is None:
            raise ConflictError("Select a greenhouse before adding a rule")

        self._draft = RuleDraft.new(gh_id, self.directory.time_sensor_id())
        self._mode = EditorMode.ADDING
        self._editing_id = None
        logger.debug("Started new rule draft for greenhouse %s", gh_id)
        return True

    @synchronized
    def start_edit(self, rule_id: int) -> bool:
        """
        Begin amending an existing rule.

        Returns:
            False when another draft is already active.

        Raises:
            NotFoundError: The rule is not loaded.
        """
        if self.is_active:
            logger.warning("Cannot edit rule %s: a draft is already active (%s)", rule_id, self._mode)
            return False
        rule = self.rule_store.get(rule_id)
        if rule is None:
            raise NotFoundError(f"Rule {rule_id} is not loaded", detail={"rule_id": rule_id})

        self._draft = RuleDraft.from_rule(rule)
        self._mode = EditorMode.EDITING
        self._editing_id = rule_id
        logger.debug("Editing rule %s", rule_id)
        return True

    @synchronized
    def cancel(self) -> None:
        if self._draft is not None:
            logger.debug("Discarding %s draft", self._mode)
        self._reset()

    def _reset(self) -> None:
        self._draft = None
        self._mode = EditorMode.IDLE
        self._editing_id = None

    def _on_selection_changed(self, payload: dict[str, Any]) -> None:
        if self.is_active:
            logger.info("Greenhouse selection changed to %s; discarding active draft", payload.get("gh_id"))
            self.cancel()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def _require_draft(self) -> RuleDraft:
        if self._draft is None:
            raise ConflictError("No draft is active")
        return self._draft

    @synchronized
    def set_field(self, name: str, value: Any) -> None:
        """Edit one field of the active draft; ``kind`` goes through :meth:`change_kind`."""
        if name == "kind":
            self.change_kind(value)
            return
        self._require_draft().set(name, value)

    @synchronized
    def change_kind(self, kind: RuleKind | str) -> None:
        self._require_draft().switch_kind(kind, self.directory.time_sensor_id())

    @synchronized
    def validate(self) -> list[str]:
        """Missing required fields of the active draft."""
        return self._require_draft().missing_fields()

    @synchronized
    def visible_fields(self) -> Tuple[Tuple[str, bool], ...]:
        """``(field, editable)`` pairs to present for the draft's kind."""
        draft = self._require_draft()
        return _VISIBLE_FIELDS[draft.kind or RuleKind.TIME]

    @synchronized
    def source_display(self) -> str:
        """Display name of the draft's source component; empty for "no source"."""
        draft = self._require_draft()
        if draft.from_comp_id in (None, NO_SOURCE_COMPONENT):
            return ""
        return self.directory.display_name(draft.from_comp_id)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------
    @synchronized
    def save(self) -> SaveResult:
        """
        Validate and submit the active draft.

        Adding sends the draft's fields with ``gh_id`` and ``enabled=True``;
        editing sends only the changed fields. An unchanged draft is a
        successful no-op.
        """
        draft = self._require_draft()
        missing = draft.missing_fields()
        if missing:
            logger.info("Save refused, missing fields: %s", ", ".join(missing))
            self.notifications.warning(MSG_REQUIRED_FIELDS, context=", ".join(missing))
            return SaveResult(saved=False, missing=tuple(missing))

        try:
            if self._mode == EditorMode.ADDING:
                rule = self._save_new(draft)
            else:
                rule = self._save_existing(draft)
        finally:
            self._reset()

        if rule is None:
            return SaveResult(saved=False, error=MSG_SAVE_FAILED)
        return SaveResult(saved=True, rule=rule)

    def _save_new(self, draft: RuleDraft) -> Optional[ThresholdRule | TimeRule]:
        fields = draft.to_fields()
        fields["gh_id"] = draft.gh_id
        fields["enabled"] = True
        return self.rule_store.create(fields)

    def _save_existing(self, draft: RuleDraft) -> Optional[ThresholdRule | TimeRule]:
        rule_id = self._editing_id
        existing = self.rule_store.get(rule_id)
        if existing is None:
            logger.error("Rule %s disappeared while being edited", rule_id)
            self.notifications.error(MSG_SAVE_FAILED, context=f"rule {rule_id} not found")
            return None
        patch = draft.changes_from(existing)
        if not patch:
            logger.debug("Rule %s unchanged; nothing to save", rule_id)
            return existing
        return self.rule_store.update(rule_id, patch)
