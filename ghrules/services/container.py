from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ghrules.config import AppConfig, load_config
from ghrules.services.component_directory import ComponentDirectory
from ghrules.services.draft_editor import DraftEditor
from ghrules.services.greenhouse_selector import GreenhouseSelector
from ghrules.services.notifications import NotificationCenter
from ghrules.services.rule_store import RuleStore
from ghrules.services.selection_loader import SelectionLoader
from ghrules.services.toggle_service import RuleToggleService
from ghrules.utils.event_bus import EventBus
from ghrules_infra.api.client import RuleApiClient
from ghrules_infra.logging.audit import AuditLogger
from ghrules_infra.session import SessionProvider

if TYPE_CHECKING:
    from ghrules.services.protocols import AuditSink, RuleAuthority

logger = logging.getLogger(__name__)


@dataclass
class RuleConfigContainer:
    """Aggregate and wire the rule configuration services."""

    config: AppConfig
    event_bus: EventBus
    session: SessionProvider
    client: "RuleAuthority"
    notifications: NotificationCenter
    audit_logger: Optional["AuditSink"]
    selector: GreenhouseSelector
    directory: ComponentDirectory
    rule_store: RuleStore
    editor: DraftEditor
    toggles: RuleToggleService
    loader: SelectionLoader

    @classmethod
    def build(
        cls,
        config: Optional[AppConfig] = None,
        *,
        client: Optional["RuleAuthority"] = None,
        session: Optional[SessionProvider] = None,
        audit_logger: Optional["AuditSink"] = None,
    ) -> "RuleConfigContainer":
        """Construct the container with all dependencies.

        Args:
            config: Application configuration (environment when omitted)
            client: Remote rule authority; an HTTP client for ``config.api_url`` by default
            session: Session provider; one backed by ``config.session_path`` by default
            audit_logger: Mutation audit sink; a file logger at ``config.audit_log_path`` by default
        """
        config = config or load_config()
        logger.info("Building RuleConfigContainer (env=%s, api=%s)", config.environment, config.api_url)

        event_bus = EventBus()
        if session is None:
            session = SessionProvider(config.session_path)
            session.load()
        if client is None:
            client = RuleApiClient(
                config.api_url,
                timeout=config.api_timeout_seconds,
                session_provider=session,
            )
        if audit_logger is None:
            audit_logger = AuditLogger(config.audit_log_path, config.log_level)

        notifications = NotificationCenter(event_bus, history_size=config.notification_history_size)
        selector = GreenhouseSelector(client, event_bus)

        # Subscription order matters: caches invalidate before the loader fetches
        directory = ComponentDirectory(event_bus)
        rule_store = RuleStore(client, event_bus, notifications, audit_logger=audit_logger)
        loader = SelectionLoader(
            client,
            selector,
            directory,
            rule_store,
            event_bus,
            max_workers=config.loader_workers,
            background=config.background_loads,
        )
        editor = DraftEditor(selector, directory, rule_store, notifications, event_bus)
        toggles = RuleToggleService(client, rule_store, notifications, event_bus, audit_logger=audit_logger)

        logger.info("RuleConfigContainer built successfully.")
        return cls(
            config=config,
            event_bus=event_bus,
            session=session,
            client=client,
            notifications=notifications,
            audit_logger=audit_logger,
            selector=selector,
            directory=directory,
            rule_store=rule_store,
            editor=editor,
            toggles=toggles,
            loader=loader,
        )

    def start(self) -> bool:
        """Load the greenhouse list; the initial selection triggers the first data load."""
        return self.selector.load()

    def logout(self) -> None:
        """Drop the draft, the loaded data and the persisted session."""
        self.editor.cancel()
        self.selector.reset()
        self.session.clear()
        logger.info("Logged out")

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        self.loader.shutdown()
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
        logger.info("RuleConfigContainer shutdown complete.")
