"""Rule configuration services: selection, caches, rule store, editor and toggles."""

from ghrules.services.component_directory import ComponentDirectory
from ghrules.services.draft_editor import DraftEditor, SaveResult
from ghrules.services.greenhouse_selector import GreenhouseSelector
from ghrules.services.notifications import NotificationCenter
from ghrules.services.rule_store import RuleStore
from ghrules.services.selection_loader import SelectionLoader
from ghrules.services.toggle_service import RuleToggleService

__all__ = [
    "ComponentDirectory",
    "DraftEditor",
    "GreenhouseSelector",
    "NotificationCenter",
    "RuleStore",
    "RuleToggleService",
    "SaveResult",
    "SelectionLoader",
]
