"""Persisted client session (token, role, user id, token lifetime).

The session is loaded once at start-up, updated as the operator works and
cleared at logout. It is stored as a small JSON file guarded by an advisory
lock file so two processes sharing a workspace do not interleave writes.
A provider created without a path keeps the session in memory only.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class FileLock:
    """Simple file-lock using a lockfile (cross-platform, advisory).

    Uses atomic creation of a .lock file and retries until timeout.
    """

    def __init__(self, lock_path: str, timeout: float = 5.0, retry: float = 0.05) -> None:
        self.lock_path = lock_path
        self.timeout = float(timeout)
        self.retry = float(retry)
        self._acquired = False

    def acquire(self) -> bool:
        start = time.time()
        while True:
            try:
                # O_EXCL ensures atomic creation; fails if the lock exists
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                self._acquired = True
                return True
            except FileExistsError:
                if (time.time() - start) >= self.timeout:
                    return False
                time.sleep(self.retry)

    def release(self) -> None:
        try:
            if self._acquired and os.path.exists(self.lock_path):
                os.unlink(self.lock_path)
        finally:
            self._acquired = False

    def __enter__(self):
        if not self.acquire():
            raise TimeoutError(f"Failed to acquire file lock: {self.lock_path}")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


@dataclass
class Session:
    """Client-side session flags."""

    token: Optional[str] = None
    role: Optional[str] = None
    user_id: Optional[int] = None
    token_expires_in: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any] | None) -> "Session":
        if not data:
            return Session()
        known = {f.name for f in fields(Session)}
        return Session(**{k: v for k, v in data.items() if k in known})


class SessionProvider:
    """Owns the session lifecycle: load at init, update, clear at logout."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._session = Session()
        self._lock = threading.Lock()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    def load(self) -> Session:
        """Read the persisted session; a missing or unreadable file yields an empty one."""
        if not self.path or not os.path.exists(self.path):
            with self._lock:
                self._session = Session()
            return self._session
        try:
            with FileLock(self.path + ".lock"):
                with open(self.path, "r", encoding="utf-8") as fh:
                    data = json.load(fh) or {}
        except (OSError, TimeoutError, ValueError) as e:
            logger.warning("Failed to load session %s: %s", self.path, e)
            data = {}
        with self._lock:
            self._session = Session.from_dict(data)
        return self._session

    def save(self) -> None:
        if not self.path:
            return
        with self._lock:
            data = self._session.to_dict()
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with FileLock(self.path + ".lock"):
                tmp = self.path + ".tmp"
                with open(tmp, "w", encoding="utf-8") as fh:
                    json.dump(data, fh)
                os.replace(tmp, self.path)
        except (OSError, TimeoutError) as e:
            logger.warning("Failed to save session %s: %s", self.path, e)

    def update(self, **changes: Any) -> Session:
        """Change session fields and persist."""
        with self._lock:
            for key, value in changes.items():
                if not hasattr(self._session, key):
                    raise AttributeError(f"Unknown session field: {key}")
                setattr(self._session, key, value)
        self.save()
        return self._session

    def set_credentials(
        self,
        token: str,
        *,
        role: Optional[str] = None,
        user_id: Optional[int] = None,
        expires_in: Optional[int] = None,
    ) -> Session:
        """Store the result of an external login."""
        return self.update(token=token, role=role, user_id=user_id, token_expires_in=expires_in)

    def clear(self) -> None:
        """Forget everything (logout or rejected token)."""
        with self._lock:
            self._session = Session()
        if self.path:
            try:
                with FileLock(self.path + ".lock"):
                    if os.path.exists(self.path):
                        os.remove(self.path)
            except (OSError, TimeoutError) as e:
                logger.warning("Failed to remove session %s: %s", self.path, e)
        logger.info("Session cleared")
