"""
Rule toggle service.

Flips a single rule's ``enabled`` flag through the dedicated toggle request.
The local record takes the value the server reports back, not the value that
was asked for; only a response without a body falls back to the request.
Works independently of the draft editor.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ghrules.constants import MSG_TOGGLE_FAILED
from ghrules.domain.exceptions import ExternalServiceError, GreenRulesError
from ghrules.enums.events import RuleEvent
from ghrules.schemas.events import RuleToggledPayload
from ghrules.services.notifications import NotificationCenter
from ghrules.services.rule_store import RuleStore
from ghrules.utils.event_bus import EventBus

if TYPE_CHECKING:
    from ghrules.services.protocols import AuditSink, RuleAuthority

logger = logging.getLogger(__name__)


class RuleToggleService:
    def __init__(
        self,
        client: "RuleAuthority",
        rule_store: RuleStore,
        notifications: NotificationCenter,
        event_bus: EventBus,
        audit_logger: Optional["AuditSink"] = None,
        actor: str = "operator",
    ) -> None:
        self.client = client
        self.rule_store = rule_store
        self.notifications = notifications
        self.event_bus = event_bus
        self.audit_logger = audit_logger
        self.actor = actor

    def toggle(self, rule_id: int, desired: bool) -> Optional[bool]:
        """
        Request ``desired`` for a rule's enabled flag.

        Returns:
            The enabled value now held locally (as confirmed by the server),
            or None when the request failed and nothing changed.
        """
        if self.rule_store.get(rule_id) is None:
            logger.error("Cannot toggle rule %s: not loaded", rule_id)
            self.notifications.error(MSG_TOGGLE_FAILED, context=f"rule {rule_id} not found")
            return None

        desired = bool(desired)
        try:
            result = self.client.toggle_rule(rule_id, desired)
            if result is not None and result.rule_id != rule_id:
                raise ExternalServiceError(
                    f"Toggle response names rule {result.rule_id}, expected {rule_id}"
                )
        except GreenRulesError as exc:
            logger.error("Failed to toggle rule %s: %s", rule_id, exc)
            self._audit(rule_id, "failure", requested=desired, error=str(exc))
            self.notifications.error(MSG_TOGGLE_FAILED, context=str(exc))
            return None

        enabled = result.enabled if result is not None else desired
        if enabled != desired:
            logger.warning("Server kept rule %s enabled=%s (requested %s)", rule_id, enabled, desired)

        self.rule_store.apply_enabled(rule_id, enabled)
        self._audit(rule_id, "success", requested=desired, enabled=enabled)
        self.event_bus.publish(
            RuleEvent.TOGGLED,
            RuleToggledPayload(rule_id=rule_id, requested=desired, enabled=enabled),
        )
        return enabled

    def flip(self, rule_id: int) -> Optional[bool]:
        """Toggle to the opposite of the locally held value."""
        rule = self.rule_store.get(rule_id)
        if rule is None:
            logger.error("Cannot flip rule %s: not loaded", rule_id)
            self.notifications.error(MSG_TOGGLE_FAILED, context=f"rule {rule_id} not found")
            return None
        return self.toggle(rule_id, not rule.enabled)

    def _audit(self, rule_id: int, outcome: str, **metadata) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log_event(self.actor, "rule.toggle", f"rule:{rule_id}", outcome, **metadata)
