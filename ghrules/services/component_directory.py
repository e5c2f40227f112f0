"""
Component Directory
===================

Holds the sensors and actuators of the currently selected greenhouse,
partitioned by role. The directory is fully replaced (never merged) each time
the selection changes; "no active greenhouse" is a legitimate empty state.

Loads are tagged with the selection version they were issued for; a
replacement carrying any other version is discarded.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, List, Optional, Tuple

from ghrules.constants import NO_SOURCE_COMPONENT, TIME_SENSOR_SUBTYPE
from ghrules.enums.events import GreenhouseEvent
from ghrules.enums.rules import ComponentRole, LoadStatus
from ghrules.schemas.greenhouse import Component
from ghrules.utils.concurrency import synchronized
from ghrules.utils.event_bus import EventBus

logger = logging.getLogger(__name__)


class ComponentDirectory:
    """Role-partitioned cache of the active greenhouse's components."""

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        self._lock = threading.RLock()
        self._gh_id: Optional[int] = None
        self._version: Optional[int] = None
        self._sensors: List[Component] = []
        self._actuators: List[Component] = []
        self._status = LoadStatus.IDLE
        self._error: Optional[str] = None

        if event_bus is not None:
            event_bus.subscribe(GreenhouseEvent.SELECTION_CHANGED, self._on_selection_changed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _on_selection_changed(self, payload: dict[str, Any]) -> None:
        gh_id = payload.get("gh_id")
        if gh_id is None:
            self.reset()
        else:
            self.invalidate(gh_id, payload["version"])

    @synchronized
    def reset(self) -> None:
        """Return to the empty "no greenhouse" state."""
        self._gh_id = None
        self._version = None
        self._sensors = []
        self._actuators = []
        self._status = LoadStatus.IDLE
        self._error = None

    @synchronized
    def invalidate(self, gh_id: int, version: int) -> None:
        """Discard cached components and wait for the load tagged ``version``."""
        self._gh_id = gh_id
        self._version = version
        self._sensors = []
        self._actuators = []
        self._status = LoadStatus.LOADING
        self._error = None

    @synchronized
    def replace(
        self,
        gh_id: int,
        version: int,
        sensors: Iterable[Component],
        actuators: Iterable[Component],
    ) -> bool:
        """
        Install a freshly loaded component set.

        Returns:
            False when the load belongs to a superseded selection.
        """
        if (gh_id, version) != (self._gh_id, self._version):
            logger.debug(
                "Discarding stale components for greenhouse %s (version %s, current %s/%s)",
                gh_id,
                version,
                self._gh_id,
                self._version,
            )
            return False

        self._sensors = self._filter(sensors, ComponentRole.SENSOR, gh_id)
        self._actuators = self._filter(actuators, ComponentRole.ACTUATOR, gh_id)
        self._status = LoadStatus.READY
        self._error = None
        logger.info(
            "Component directory ready for greenhouse %s: %d sensors, %d actuators",
            gh_id,
            len(self._sensors),
            len(self._actuators),
        )
        return True

    @synchronized
    def fail(self, gh_id: int, version: int, message: str) -> bool:
        if (gh_id, version) != (self._gh_id, self._version):
            return False
        self._sensors = []
        self._actuators = []
        self._status = LoadStatus.ERROR
        self._error = message
        return True

    @staticmethod
    def _filter(components: Iterable[Component], role: ComponentRole, gh_id: int) -> List[Component]:
        kept: List[Component] = []
        for component in components:
            if component.role != role or component.gh_id != gh_id:
                logger.warning(
                    "Ignoring component %s (role=%s, gh_id=%s) in %s list for greenhouse %s",
                    component.comp_id,
                    component.role,
                    component.gh_id,
                    role,
                    gh_id,
                )
                continue
            kept.append(component)
        return kept

    # ------------------------------------------------------------------
    # State
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
    def sensors(self) -> List[Component]:
        with self._lock:
            return list(self._sensors)

    @property
    def actuators(self) -> List[Component]:
        with self._lock:
            return list(self._actuators)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @synchronized
    def get(self, comp_id: int) -> Optional[Component]:
        """Find a component by id across sensors and actuators."""
        for component in (*self._sensors, *self._actuators):
            if component.comp_id == comp_id:
                return component
        return None

    def display_name(self, comp_id: Optional[int]) -> str:
        """
        Human-readable name for ``comp_id``.

        Rules may reference components deleted since; unknown ids fall back
        to the raw id rather than failing.
        """
        if comp_id is None:
            return ""
        component = self.get(comp_id)
        if component is None or not component.name:
            return str(comp_id)
        return component.name

    @synchronized
    def time_sensor_id(self) -> int:
        """Id of the sensor with subtype exactly "Time", else ``NO_SOURCE_COMPONENT``."""
        for sensor in self._sensors:
            if sensor.subtype == TIME_SENSOR_SUBTYPE:
                return sensor.comp_id
        return NO_SOURCE_COMPONENT

    def is_sensor(self, comp_id: int) -> bool:
        component = self.get(comp_id)
        return component is not None and component.is_sensor

    def is_actuator(self, comp_id: int) -> bool:
        component = self.get(comp_id)
        return component is not None and component.is_actuator

    def sensor_options(self) -> List[Tuple[int, str]]:
        """(comp_id, name) choices for a rule's source field."""
        return [(s.comp_id, s.name) for s in self.sensors]

    def actuator_options(self) -> List[Tuple[int, str]]:
        """(comp_id, name) choices for a rule's target field."""
        return [(a.comp_id, a.name) for a in self.actuators]
