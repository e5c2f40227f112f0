"""
Greenhouse Selector Tests
=========================
"""

import pytest

from ghrules.constants import MSG_GREENHOUSES_LOAD_FAILED
from ghrules.domain.exceptions import ExternalServiceError, NotFoundError
from ghrules.enums.events import GreenhouseEvent
from ghrules.enums.rules import LoadStatus
from ghrules.services.greenhouse_selector import GreenhouseSelector


@pytest.fixture
def selection_events(event_bus):
    received = []
    event_bus.subscribe(GreenhouseEvent.SELECTION_CHANGED, received.append)
    return received


class TestLoad:
    def test_first_greenhouse_becomes_active(self, selector, selection_events):
        assert selector.load() is True

        assert [gh.name for gh in selector.greenhouses] == ["A", "B"]
        assert selector.active_id == 1
        assert selector.active.name == "A"
        assert selector.status == LoadStatus.READY
        assert selection_events == [{"schema_version": 1, "gh_id": 1, "previous_gh_id": None, "version": 1}]

    def test_load_is_once(self, selector, authority):
        selector.load()
        selector.load()

        assert len(authority.calls_to("list_greenhouses")) == 1

    def test_empty_list_selects_nothing(self, authority, event_bus, selection_events):
        authority.greenhouses = []
        selector = GreenhouseSelector(authority, event_bus)

        assert selector.load() is True
        assert selector.active_id is None
        assert selector.active is None
        assert selection_events == []

    def test_failure_sets_error_state(self, authority, event_bus):
        authority.failures["list_greenhouses"] = ExternalServiceError("down")
        failures = []
        event_bus.subscribe(GreenhouseEvent.LOAD_FAILED, failures.append)
        selector = GreenhouseSelector(authority, event_bus)

        assert selector.load() is False
        assert selector.status == LoadStatus.ERROR
        assert selector.error == MSG_GREENHOUSES_LOAD_FAILED
        assert selector.greenhouses == []
        assert failures[0]["message"] == MSG_GREENHOUSES_LOAD_FAILED

    def test_load_retried_after_failure(self, authority, event_bus):
        authority.failures["list_greenhouses"] = ExternalServiceError("down")
        selector = GreenhouseSelector(authority, event_bus)
        selector.load()

        del authority.failures["list_greenhouses"]
        assert selector.load() is True
        assert selector.active_id == 1

    def test_earlier_choice_does_not_carry_over(self, authority, event_bus):
        first_run = GreenhouseSelector(authority, event_bus)
        first_run.load()
        first_run.select(2)

        second_run = GreenhouseSelector(authority, event_bus)
        second_run.load()

        assert second_run.active_id == 1


class TestSelect:
    def test_select_bumps_version_and_publishes(self, selector, selection_events):
        selector.load()

        selector.select(2)

        assert selector.active_id == 2
        assert selector.version == 2
        assert selection_events[-1]["gh_id"] == 2
        assert selection_events[-1]["previous_gh_id"] == 1

    def test_select_same_is_noop(self, selector, selection_events):
        selector.load()

        selector.select(1)

        assert selector.version == 1
        assert len(selection_events) == 1

    def test_select_unknown_raises(self, selector):
        selector.load()

        with pytest.raises(NotFoundError):
            selector.select(99)
        assert selector.active_id == 1

    def test_is_current(self, selector):
        selector.load()
        selector.select(2)

        assert selector.is_current(2)
        assert not selector.is_current(1)

    def test_reset_publishes_empty_selection(self, selector, selection_events):
        selector.load()

        selector.reset()

        assert selector.active_id is None
        assert selector.greenhouses == []
        assert selector.status == LoadStatus.IDLE
        assert selection_events[-1]["gh_id"] is None
