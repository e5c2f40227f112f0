"""
Greenhouse Selector
===================

Owns the list of available greenhouses (loaded once) and the active
selection. Every change of the active greenhouse bumps a selection version
and publishes ``GreenhouseEvent.SELECTION_CHANGED``; dependents invalidate
themselves on that event and loaders tag their requests with the version so
late responses for a superseded selection can be discarded.
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, List, Optional

from ghrules.constants import MSG_GREENHOUSES_LOAD_FAILED
from ghrules.domain.exceptions import GreenRulesError, NotFoundError
from ghrules.enums.events import GreenhouseEvent
from ghrules.enums.rules import LoadStatus
from ghrules.schemas.events import GreenhouseLoadFailedPayload, SelectionChangedPayload
from ghrules.schemas.greenhouse import Greenhouse
from ghrules.utils.concurrency import synchronized
from ghrules.utils.event_bus import EventBus

if TYPE_CHECKING:
    from ghrules.services.protocols import RuleAuthority

logger = logging.getLogger(__name__)


class GreenhouseSelector:
    """Greenhouse list plus the active ``gh_id``."""

    def __init__(self, client: "RuleAuthority", event_bus: EventBus) -> None:
        self.client = client
        self.event_bus = event_bus
        self._lock = threading.RLock()
        self._greenhouses: List[Greenhouse] = []
        self._active_id: Optional[int] = None
        self._version = 0
        self._status = LoadStatus.IDLE
        self._error: Optional[str] = None

    def load(self) -> bool:
        """
        Fetch the greenhouse list once.

        On the first successful load the first greenhouse in server order
        becomes active. Later calls are no-ops.

        Returns:
            True when the list is available.
        """
        with self._lock:
            if self._status == LoadStatus.READY:
                return True
            self._status = LoadStatus.LOADING
            self._error = None

        try:
            greenhouses = self.client.list_greenhouses()
        except GreenRulesError as exc:
            logger.error("Failed to load greenhouses: %s", exc)
            with self._lock:
                self._status = LoadStatus.ERROR
                self._error = MSG_GREENHOUSES_LOAD_FAILED
            self.event_bus.publish(
                GreenhouseEvent.LOAD_FAILED,
                GreenhouseLoadFailedPayload(message=MSG_GREENHOUSES_LOAD_FAILED),
            )
            return False

        with self._lock:
            self._greenhouses = list(greenhouses)
            self._status = LoadStatus.READY
        logger.info("Loaded %d greenhouses", len(greenhouses))

        if greenhouses:
            self.select(greenhouses[0].gh_id)
        return True

    def select(self, gh_id: int) -> None:
        """
        Make ``gh_id`` the active greenhouse.

        Raises:
            NotFoundError: ``gh_id`` is not in the loaded list.
        """
        with self._lock:
            if not self.contains(gh_id):
                raise NotFoundError(f"Greenhouse {gh_id} is not available", detail={"gh_id": gh_id})
            if gh_id == self._active_id:
                return
            previous = self._active_id
            self._active_id = gh_id
            self._version += 1
            version = self._version

        logger.info("Active greenhouse changed %s -> %s (version %d)", previous, gh_id, version)
        self.event_bus.publish(
            GreenhouseEvent.SELECTION_CHANGED,
            SelectionChangedPayload(gh_id=gh_id, previous_gh_id=previous, version=version),
        )

    def reset(self) -> None:
        """Forget the list and the selection (e.g. at logout)."""
        with self._lock:
            previous = self._active_id
            self._greenhouses = []
            self._active_id = None
            self._version += 1
            version = self._version
            self._status = LoadStatus.IDLE
            self._error = None
        self.event_bus.publish(
            GreenhouseEvent.SELECTION_CHANGED,
            SelectionChangedPayload(gh_id=None, previous_gh_id=previous, version=version),
        )

    @synchronized
    def contains(self, gh_id: int) -> bool:
        return any(gh.gh_id == gh_id for gh in self._greenhouses)

    @synchronized
    def is_current(self, version: int) -> bool:
        """True when ``version`` tags the selection that is still active."""
        return version == self._version

    @property
    def greenhouses(self) -> List[Greenhouse]:
        with self._lock:
            return list(self._greenhouses)

    @property
    def active_id(self) -> Optional[int]:
        return self._active_id

    @property
    def active(self) -> Optional[Greenhouse]:
        with self._lock:
            return next((gh for gh in self._greenhouses if gh.gh_id == self._active_id), None)

    @property
    def version(self) -> int:
        return self._version

    @property
    def status(self) -> LoadStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error
