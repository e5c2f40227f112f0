"""
Service protocols (structural typing interfaces).

Protocols let services declare the *minimal* surface they depend on without
importing the concrete class, making tests trivially mockable.

Usage
-----
In a consumer service::

    from __future__ import annotations
    from typing import TYPE_CHECKING
    if TYPE_CHECKING:
        from ghrules.services.protocols import RuleAuthority

    class RuleStore:
        def __init__(self, client: "RuleAuthority", ...): ...

At runtime ``ghrules_infra.api.client.RuleApiClient`` satisfies the
protocol via structural subtyping; tests use an in-memory fake.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from ghrules.enums.rules import ComponentRole
from ghrules.schemas.greenhouse import Component, Greenhouse
from ghrules.schemas.rules import ThresholdRule, TimeRule, ToggleResult

# Receives a prompt, returns True when the user confirmed
Confirm = Callable[[str], bool]


@runtime_checkable
class RuleAuthority(Protocol):
    """Remote owner of greenhouses, components and rules.

    Every method raises a :class:`~ghrules.domain.exceptions.GreenRulesError`
    subclass on failure; callers only distinguish success from failure.
    """

    def list_greenhouses(self) -> list[Greenhouse]:
        """Return all greenhouses in server order."""
        ...

    def list_components(self, gh_id: int, role: Optional[ComponentRole] = None) -> list[Component]:
        """Return the components of a greenhouse, optionally filtered by role."""
        ...

    def list_rules(self, gh_id: int) -> list[ThresholdRule | TimeRule]:
        """Return all rules of a greenhouse."""
        ...

    def get_rule(self, rule_id: int) -> ThresholdRule | TimeRule:
        ...

    def create_rule(self, gh_id: int, fields: dict[str, Any]) -> ThresholdRule | TimeRule:
        """Create a rule; the server assigns ``rule_id`` and timestamps."""
        ...

    def update_rule(self, rule_id: int, patch: dict[str, Any]) -> Optional[ThresholdRule | TimeRule]:
        """Apply ``patch``; returns the stored rule, or ``None`` when the server sends no body."""
        ...

    def delete_rule(self, rule_id: int) -> None:
        ...

    def toggle_rule(self, rule_id: int, enabled: bool) -> Optional[ToggleResult]:
        """Request ``enabled``; returns the server's state, or ``None`` when it sends no body."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Append-only record of rule mutations."""

    def log_event(self, actor: str, action: str, resource: str, outcome: str, **metadata: Any) -> None:
        ...
