"""
Rule Store
==========

In-memory collection of the active greenhouse's rules, kept consistent with
the remote rule authority.

Mutations follow one policy: the remote call happens first and the local
list changes only after it succeeded. A failed mutation leaves the store as
it was, logs the error, raises a user notification and returns a falsy
value; nothing is raised to the caller.

Ordering is server order for loaded rules; created rules are appended.
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional

from ghrules.constants import DELETE_PROMPT, MSG_DELETE_FAILED, MSG_REQUIRED_FIELDS, MSG_SAVE_FAILED
from ghrules.domain.draft import RuleDraft
from ghrules.domain.exceptions import GreenRulesError, NotFoundError, ValidationError
from ghrules.enums.events import GreenhouseEvent, RuleEvent
from ghrules.enums.rules import LoadStatus, RuleKind
from ghrules.schemas.events import RuleChangedPayload
from ghrules.schemas.rules import READ_ONLY_FIELDS, ThresholdRule, TimeRule, merge_rule
from ghrules.services.notifications import NotificationCenter
from ghrules.utils.concurrency import synchronized
from ghrules.utils.event_bus import EventBus

if TYPE_CHECKING:
    from ghrules.services.protocols import AuditSink, Confirm, RuleAuthority

logger = logging.getLogger(__name__)

RuleModel = ThresholdRule | TimeRule


class RuleStore:
    """Rules of the active greenhouse plus create/update/delete against the server."""

    def __init__(
        self,
        client: "RuleAuthority",
        event_bus: EventBus,
        notifications: NotificationCenter,
        audit_logger: Optional["AuditSink"] = None,
        actor: str = "operator",
    ) -> None:
        self.client = client
        self.event_bus = event_bus
        self.notifications = notifications
        self.audit_logger = audit_logger
        self.actor = actor

        self._lock = threading.RLock()
        self._gh_id: Optional[int] = None
        self._version: Optional[int] = None
        self._rules: List[RuleModel] = []
        self._status = LoadStatus.IDLE
        self._error: Optional[str] = None

        event_bus.subscribe(GreenhouseEvent.SELECTION_CHANGED, self._on_selection_changed)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _on_selection_changed(self, payload: dict[str, Any]) -> None:
        gh_id = payload.get("gh_id")
        if gh_id is None:
            self.reset()
        else:
            self.invalidate(gh_id, payload["version"])

    @synchronized
    def reset(self) -> None:
        self._gh_id = None
        self._version = None
        self._rules = []
        self._status = LoadStatus.IDLE
        self._error = None

    @synchronized
    def invalidate(self, gh_id: int, version: int) -> None:
        """Drop all rules and wait for the load tagged ``version``."""
        self._gh_id = gh_id
        self._version = version
        self._rules = []
        self._status = LoadStatus.LOADING
        self._error = None

    @synchronized
    def replace(self, gh_id: int, version: int, rules: Iterable[RuleModel]) -> bool:
        """Install loaded rules; False when the load belongs to a superseded selection."""
        if (gh_id, version) != (self._gh_id, self._version):
            logger.debug("Discarding stale rules for greenhouse %s (version %s)", gh_id, version)
            return False
        self._rules = list(rules)
        self._status = LoadStatus.READY
        self._error = None
        logger.info("Rule store ready for greenhouse %s: %d rules", gh_id, len(self._rules))
        return True

    @synchronized
    def fail(self, gh_id: int, version: int, message: str) -> bool:
        if (gh_id, version) != (self._gh_id, self._version):
            return False
        self._rules = []
        self._status = LoadStatus.ERROR
        self._error = message
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def gh_id(self) -> Optional[int]:
        return self._gh_id

    @property
    def status(self) -> LoadStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def rules(self) -> List[RuleModel]:
        with self._lock:
            return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[RuleModel]:
        return iter(self.rules)

    @synchronized
    def get(self, rule_id: int) -> Optional[RuleModel]:
        return next((rule for rule in self._rules if rule.rule_id == rule_id), None)

    @synchronized
    def _index_of(self, rule_id: int) -> int:
        for index, rule in enumerate(self._rules):
            if rule.rule_id == rule_id:
                return index
        raise NotFoundError(f"Rule {rule_id} is not loaded", detail={"rule_id": rule_id})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, fields: dict[str, Any]) -> Optional[RuleModel]:
        """
        Create a rule from complete, kind-valid fields.

        Args:
            fields: Attribute-named rule fields including ``gh_id``.

        Returns:
            The server's rule (with id and timestamps), or None on failure.
        """
        gh_id = fields.get("gh_id", self._gh_id)
        try:
            self._check_complete(fields)
        except ValidationError as exc:
            logger.warning("Refusing to create incomplete rule: %s", exc)
            self.notifications.warning(MSG_REQUIRED_FIELDS, context=str(exc))
            return None

        try:
            rule = self.client.create_rule(gh_id, fields)
        except GreenRulesError as exc:
            logger.error("Failed to create rule %r: %s", fields.get("name"), exc)
            self._audit("create", "new", "failure", error=str(exc))
            self.notifications.error(MSG_SAVE_FAILED, context=str(exc))
            return None

        with self._lock:
            if rule.gh_id == self._gh_id:
                self._rules.append(rule)
            else:
                logger.info("Created rule %s belongs to greenhouse %s, not shown", rule.rule_id, rule.gh_id)

        logger.info("Created rule %s (%s)", rule.rule_id, rule.name)
        self._audit("create", f"rule:{rule.rule_id}", "success", gh_id=rule.gh_id)
        self.event_bus.publish(
            RuleEvent.CREATED,
            RuleChangedPayload(rule_id=rule.rule_id, gh_id=rule.gh_id, action="create"),
        )
        return rule

    def update(self, rule_id: int, patch: dict[str, Any]) -> Optional[RuleModel]:
        """
        Send only the changed fields of a rule.

        The server's returned representation wins when it sends one;
        otherwise the patch is merged onto the local record. The merged
        record is validated before the request so an invalid patch is never
        sent.

        Returns:
            The updated rule, or None on failure.
        """
        existing = self.get(rule_id)
        if existing is None:
            logger.error("Cannot update rule %s: not loaded", rule_id)
            self.notifications.error(MSG_SAVE_FAILED, context=f"rule {rule_id} not found")
            return None

        patch = {k: v for k, v in patch.items() if k not in READ_ONLY_FIELDS}
        if not patch:
            return existing

        try:
            candidate = merge_rule(existing, patch)
        except ValueError as exc:
            logger.warning("Refusing invalid patch for rule %s: %s", rule_id, exc)
            self.notifications.warning(MSG_REQUIRED_FIELDS, context=f"rule {rule_id}")
            return None

        try:
            returned = self.client.update_rule(rule_id, patch)
        except GreenRulesError as exc:
            logger.error("Failed to update rule %s: %s", rule_id, exc)
            self._audit("update", f"rule:{rule_id}", "failure", error=str(exc))
            self.notifications.error(MSG_SAVE_FAILED, context=str(exc))
            return None

        updated = returned if returned is not None else candidate
        with self._lock:
            try:
                self._rules[self._index_of(rule_id)] = updated
            except NotFoundError:
                # Selection changed while the request was in flight
                logger.info("Updated rule %s is no longer loaded", rule_id)

        logger.info("Updated rule %s fields=%s", rule_id, sorted(patch))
        self._audit("update", f"rule:{rule_id}", "success", fields=sorted(patch))
        self.event_bus.publish(
            RuleEvent.UPDATED,
            RuleChangedPayload(rule_id=rule_id, gh_id=updated.gh_id, action="update"),
        )
        return updated

    def delete(self, rule_id: int, confirm: "Confirm") -> bool:
        """
        Delete a rule after explicit confirmation.

        Args:
            rule_id: Rule to delete.
            confirm: Called with a prompt; nothing happens unless it returns True.

        Returns:
            True when the rule was deleted.
        """
        existing = self.get(rule_id)
        if existing is None:
            logger.error("Cannot delete rule %s: not loaded", rule_id)
            self.notifications.error(MSG_DELETE_FAILED, context=f"rule {rule_id} not found")
            return False

        if not confirm(DELETE_PROMPT):
            logger.info("Deletion of rule %s not confirmed", rule_id)
            return False

        try:
            self.client.delete_rule(rule_id)
        except GreenRulesError as exc:
            logger.error("Failed to delete rule %s: %s", rule_id, exc)
            self._audit("delete", f"rule:{rule_id}", "failure", error=str(exc))
            self.notifications.error(MSG_DELETE_FAILED, context=str(exc))
            return False

        with self._lock:
            self._rules = [rule for rule in self._rules if rule.rule_id != rule_id]

        logger.info("Deleted rule %s", rule_id)
        self._audit("delete", f"rule:{rule_id}", "success")
        self.event_bus.publish(
            RuleEvent.DELETED,
            RuleChangedPayload(rule_id=rule_id, gh_id=existing.gh_id, action="delete"),
        )
        return True

    @synchronized
    def apply_enabled(self, rule_id: int, enabled: bool) -> Optional[RuleModel]:
        """Set the local ``enabled`` flag to a server-confirmed value."""
        try:
            index = self._index_of(rule_id)
        except NotFoundError:
            return None
        rule = self._rules[index].model_copy(update={"enabled": enabled})
        self._rules[index] = rule
        return rule

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _check_complete(fields: dict[str, Any]) -> None:
        kind = fields.get("kind")
        try:
            kind = RuleKind(kind) if kind else None
        except ValueError:
            raise ValidationError(f"Unknown rule kind {kind!r}", missing=["kind"]) from None
        draft = RuleDraft(
            kind=kind,
            name=fields.get("name") or "",
            gh_id=fields.get("gh_id"),
            to_comp_id=fields.get("to_comp_id"),
            from_comp_id=fields.get("from_comp_id"),
            operator_=fields.get("operator_", fields.get("operator")),
            threshold=fields.get("threshold"),
            time_spec=fields.get("time_spec"),
        )
        draft.validate()
        if fields.get("gh_id") is None:
            raise ValidationError("Missing required fields: gh_id", missing=["gh_id"])

    def _audit(self, action: str, resource: str, outcome: str, **metadata: Any) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.log_event(self.actor, f"rule.{action}", resource, outcome, **metadata)
