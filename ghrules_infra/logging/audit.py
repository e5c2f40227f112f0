import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict


class WindowsSafeRotatingFileHandler(RotatingFileHandler):
    """
    A RotatingFileHandler that closes the file handle before rotation and
    tolerates the PermissionError Windows raises while the file is locked.
    """

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None
        try:
            super().doRollover()
        except PermissionError:
            # File still locked; skip this rotation and keep logging.
            pass
        finally:
            if not self.stream:
                self.stream = self._open()


class AuditLogger:
    """Structured audit logger that writes append-only JSON records of rule mutations."""

    def __init__(self, log_path: str, level: str = "INFO") -> None:
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("ghrules.audit")
        self.logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self.logger.propagate = False

        if not any(
            isinstance(handler, RotatingFileHandler) and getattr(handler, "baseFilename", None) == str(self.log_path.resolve())
            for handler in self.logger.handlers
        ):
            handler_cls = WindowsSafeRotatingFileHandler if sys.platform == "win32" else RotatingFileHandler
            handler = handler_cls(
                filename=str(self.log_path),
                maxBytes=10 * 1024 * 1024,
                backupCount=30,
                encoding="utf-8",
                delay=True,
            )
            handler.setFormatter(
                logging.Formatter(
                    fmt="%(asctime)sZ | %(levelname)s | %(message)s",
                    datefmt="%Y-%m-%dT%H:%M:%S",
                )
            )
            self.logger.addHandler(handler)

    def log_event(self, actor: str, action: str, resource: str, outcome: str, **metadata: Any) -> None:
        payload: Dict[str, Any] = {
            "actor": actor,
            "action": action,
            "resource": resource,
            "outcome": outcome,
        }
        if metadata:
            payload["meta"] = metadata

        self.logger.info(json.dumps(payload, default=str))
