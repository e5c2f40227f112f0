"""
Shared test fixtures for the GreenRules test suite.

Provides:
- An in-memory fake of the remote rule authority that records every call
- Event bus, notification center and mock audit sink
- Service factories wired the same way the container wires them

Usage:
    def test_example(authority, rule_store):
        rule_store.delete(1, confirm=lambda prompt: True)
        assert authority.calls_to("delete_rule") == [(1,)]
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from ghrules.config import AppConfig
from ghrules.enums.rules import ComponentRole
from ghrules.schemas.greenhouse import Component, Greenhouse
from ghrules.schemas.rules import ToggleResult, merge_rule, parse_rule
from ghrules.services.component_directory import ComponentDirectory
from ghrules.services.container import RuleConfigContainer
from ghrules.services.draft_editor import DraftEditor
from ghrules.services.greenhouse_selector import GreenhouseSelector
from ghrules.services.notifications import NotificationCenter
from ghrules.services.rule_store import RuleStore
from ghrules.services.selection_loader import SelectionLoader
from ghrules.services.toggle_service import RuleToggleService
from ghrules.utils.event_bus import EventBus
from ghrules_infra.session import SessionProvider

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("ghrules").setLevel(logging.WARNING)
logging.getLogger("ghrules_infra").setLevel(logging.WARNING)


# ========================== Fake remote authority ==========================


class FakeRuleAuthority:
    """In-memory rule authority.

    ``failures`` maps a method name to the exception that method raises.
    ``update_returns_body`` and ``toggle_returns_body`` switch between a full
    response and a bodiless (HTTP 204 style) one; ``toggle_forced`` makes the
    server report a different enabled value than requested.
    """

    def __init__(self) -> None:
        self.greenhouses: list[Greenhouse] = []
        self.components: list[Component] = []
        self.rules: dict[int, Any] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, Exception] = {}
        self.update_returns_body = True
        self.toggle_returns_body = True
        self.toggle_forced: Optional[bool] = None
        self.toggle_rule_id: Optional[int] = None
        self._next_id = 100

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        exc = self.failures.get(name)
        if exc is not None:
            raise exc

    def calls_to(self, name: str) -> list[tuple]:
        return [args for called, args in self.calls if called == name]

    # Seeding -----------------------------------------------------------
    def add_greenhouse(self, gh_id: int, name: str) -> None:
        self.greenhouses.append(Greenhouse(gh_id=gh_id, name=name))

    def add_component(self, comp_id: int, gh_id: int, name: str, role: str, subtype: str = "") -> None:
        self.components.append(Component(comp_id=comp_id, gh_id=gh_id, name=name, role=role, subtype=subtype))

    def add_rule(self, **fields: Any) -> None:
        rule = parse_rule(fields)
        self.rules[rule.rule_id] = rule

    # RuleAuthority -----------------------------------------------------
    def list_greenhouses(self):
        self._call("list_greenhouses")
        return list(self.greenhouses)

    def list_components(self, gh_id, role=None):
        self._call("list_components", gh_id, role)
        return [
            c
            for c in self.components
            if c.gh_id == gh_id and (role is None or c.role == ComponentRole(role))
        ]

    def list_rules(self, gh_id):
        self._call("list_rules", gh_id)
        return [rule for rule in self.rules.values() if rule.gh_id == gh_id]

    def get_rule(self, rule_id):
        self._call("get_rule", rule_id)
        return self.rules[rule_id]

    def create_rule(self, gh_id, fields):
        self._call("create_rule", gh_id, dict(fields))
        self._next_id += 1
        rule = parse_rule(
            {
                **fields,
                "gh_id": gh_id,
                "rule_id": self._next_id,
                "created_at": "2024-05-01 10:00:00",
                "updated_at": "2024-05-01 10:00:00",
            }
        )
        self.rules[rule.rule_id] = rule
        return rule

    def update_rule(self, rule_id, patch):
        self._call("update_rule", rule_id, dict(patch))
        rule = merge_rule(self.rules[rule_id], patch).model_copy(update={"updated_at": "2024-05-02 10:00:00"})
        self.rules[rule_id] = rule
        return rule if self.update_returns_body else None

    def delete_rule(self, rule_id):
        self._call("delete_rule", rule_id)
        self.rules.pop(rule_id, None)

    def toggle_rule(self, rule_id, enabled):
        self._call("toggle_rule", rule_id, enabled)
        applied = enabled if self.toggle_forced is None else self.toggle_forced
        self.rules[rule_id] = self.rules[rule_id].model_copy(update={"enabled": applied})
        if not self.toggle_returns_body:
            return None
        return ToggleResult(rule_id=self.toggle_rule_id or rule_id, enabled=applied)


# ========================== Fixtures =======================================


@pytest.fixture()
def authority():
    """Two greenhouses; only greenhouse 1 has a Time sensor."""
    fake = FakeRuleAuthority()
    fake.add_greenhouse(1, "A")
    fake.add_greenhouse(2, "B")

    fake.add_component(5, 1, "Air temperature", "sensor", "temperature")
    fake.add_component(7, 1, "Clock", "sensor", "Time")
    fake.add_component(9, 1, "Fan", "actuator", "fan")
    fake.add_component(10, 1, "Heater", "actuator", "heater")
    fake.add_component(21, 2, "Soil moisture", "sensor", "moisture")
    fake.add_component(22, 2, "Pump", "actuator", "pump")

    fake.add_rule(
        rule_id=1, gh_id=1, name="Vent", kind="threshold",
        from_comp_id=5, operator=">", threshold=28.0, to_comp_id=9, enabled=True,
    )
    fake.add_rule(
        rule_id=2, gh_id=1, name="Morning heat", kind="time",
        time_spec="06:30", from_comp_id=7, to_comp_id=10, enabled=False,
    )
    fake.add_rule(
        rule_id=3, gh_id=2, name="Water", kind="time",
        time_spec="08:00", from_comp_id=0, to_comp_id=22, enabled=True,
    )
    return fake


@pytest.fixture()
def event_bus():
    return EventBus()


@pytest.fixture()
def notifications(event_bus):
    return NotificationCenter(event_bus)


@pytest.fixture()
def mock_audit_logger():
    """Mock AuditLogger."""
    logger = MagicMock()
    logger.log_event = MagicMock()
    return logger


@pytest.fixture()
def session():
    """In-memory session provider (no file)."""
    return SessionProvider()


@pytest.fixture()
def directory(event_bus):
    return ComponentDirectory(event_bus)


@pytest.fixture()
def rule_store(authority, event_bus, notifications, mock_audit_logger):
    return RuleStore(authority, event_bus, notifications, audit_logger=mock_audit_logger)


@pytest.fixture()
def selector(authority, event_bus):
    return GreenhouseSelector(authority, event_bus)


@pytest.fixture()
def loader(authority, selector, directory, rule_store, event_bus):
    loader = SelectionLoader(authority, selector, directory, rule_store, event_bus)
    yield loader
    loader.shutdown()


@pytest.fixture()
def editor(selector, directory, rule_store, notifications, event_bus, loader):
    return DraftEditor(selector, directory, rule_store, notifications, event_bus)


@pytest.fixture()
def toggles(authority, rule_store, notifications, event_bus, mock_audit_logger):
    return RuleToggleService(authority, rule_store, notifications, event_bus, audit_logger=mock_audit_logger)


@pytest.fixture()
def loaded(selector, loader):
    """Greenhouses loaded; greenhouse 1 selected and its data installed."""
    assert selector.load()
    return selector


@pytest.fixture()
def app_config():
    return AppConfig(api_url="http://rules.test", session_path="", audit_log_path="unused.log")


@pytest.fixture()
def container(app_config, authority, session, mock_audit_logger):
    """Fully wired container on top of the fake authority."""
    built = RuleConfigContainer.build(
        app_config, client=authority, session=session, audit_logger=mock_audit_logger
    )
    yield built
    built.shutdown()
