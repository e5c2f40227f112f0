"""
Selection Loader
================

Reloads the dependent state of a greenhouse selection: rules, sensors and
actuators are fetched concurrently and installed only once all three
succeeded. Any failure puts one combined error on both the component
directory and the rule store; nothing is partially populated.

Every load is tagged with the selection version it was issued for. Results
for a selection that has since been superseded are dropped, so the last
issued selection wins regardless of which response arrives last.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any, Dict, Optional

from ghrules.constants import MSG_DATA_LOAD_FAILED
from ghrules.enums.events import GreenhouseEvent
from ghrules.enums.rules import ComponentRole
from ghrules.schemas.events import GreenhouseDataLoadedPayload, GreenhouseLoadFailedPayload
from ghrules.services.component_directory import ComponentDirectory
from ghrules.services.greenhouse_selector import GreenhouseSelector
from ghrules.services.rule_store import RuleStore
from ghrules.utils.event_bus import EventBus

if TYPE_CHECKING:
    from ghrules.services.protocols import RuleAuthority

logger = logging.getLogger(__name__)

# Number of independent fetches per selection
FETCHES_PER_LOAD = 3


class SelectionLoader:
    """Cascade loader subscribed to ``GreenhouseEvent.SELECTION_CHANGED``."""

    def __init__(
        self,
        client: "RuleAuthority",
        selector: GreenhouseSelector,
        directory: ComponentDirectory,
        rule_store: RuleStore,
        event_bus: EventBus,
        max_workers: int = FETCHES_PER_LOAD,
        background: bool = False,
    ) -> None:
        self.client = client
        self.selector = selector
        self.directory = directory
        self.rule_store = rule_store
        self.event_bus = event_bus
        self.background = background

        self._executor = ThreadPoolExecutor(
            max_workers=max(max_workers, FETCHES_PER_LOAD),
            thread_name_prefix="ghrules-fetch",
        )
        # Outer load tasks run here so they never wait on their own pool
        self._dispatcher: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        self._lock = threading.Lock()

        event_bus.subscribe(GreenhouseEvent.SELECTION_CHANGED, self._on_selection_changed)

    @property
    def pending(self) -> Optional[Future]:
        """Future of the most recent background load, if any."""
        return self._pending

    def _on_selection_changed(self, payload: Dict[str, Any]) -> None:
        gh_id = payload.get("gh_id")
        if gh_id is None:
            return
        version = payload["version"]
        if not self.background:
            self.load(gh_id, version)
            return
        with self._lock:
            if self._dispatcher is None:
                self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ghrules-load")
            self._pending = self._dispatcher.submit(self.load, gh_id, version)

    def load(self, gh_id: int, version: int) -> bool:
        """
        Fetch and install the rules and components of ``gh_id``.

        Returns:
            True when the results were installed; False when any fetch failed
            or the selection moved on while loading.
        """
        logger.debug("Loading greenhouse %s (version %s)", gh_id, version)
        tasks = {
            "rules": (self.client.list_rules, (gh_id,)),
            "sensors": (self.client.list_components, (gh_id, ComponentRole.SENSOR)),
            "actuators": (self.client.list_components, (gh_id, ComponentRole.ACTUATOR)),
        }

        results: Dict[str, Any] = {}
        errors: Dict[str, str] = {}
        future_to_name = {self._executor.submit(func, *args): name for name, (func, args) in tasks.items()}
        for future in as_completed(future_to_name):
            name = future_to_name[future]
            try:
                results[name] = future.result()
            except Exception as exc:
                logger.error("Failed to load %s for greenhouse %s: %s", name, gh_id, exc, exc_info=True)
                errors[name] = str(exc)

        if not self.selector.is_current(version):
            logger.info("Discarding load for greenhouse %s: selection version %s superseded", gh_id, version)
            return False

        if errors:
            self.directory.fail(gh_id, version, MSG_DATA_LOAD_FAILED)
            self.rule_store.fail(gh_id, version, MSG_DATA_LOAD_FAILED)
            self.event_bus.publish(
                GreenhouseEvent.LOAD_FAILED,
                GreenhouseLoadFailedPayload(gh_id=gh_id, version=version, message=MSG_DATA_LOAD_FAILED),
            )
            return False

        installed = self.directory.replace(gh_id, version, results["sensors"], results["actuators"])
        installed = self.rule_store.replace(gh_id, version, results["rules"]) and installed
        if not installed:
            return False

        self.event_bus.publish(
            GreenhouseEvent.DATA_LOADED,
            GreenhouseDataLoadedPayload(
                gh_id=gh_id,
                version=version,
                rule_count=len(results["rules"]),
                sensor_count=len(self.directory.sensors),
                actuator_count=len(self.directory.actuators),
            ),
        )
        return True

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None:
            dispatcher.shutdown(wait=wait)
        self._executor.shutdown(wait=wait)
