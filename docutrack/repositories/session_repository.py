"""Session persistence: the currently logged-in user, under "currentUser"."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from docutrack.models.user import User
from docutrack.repositories.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_KEY = "currentUser"


class SessionRepository:
    """Stores a snapshot of the session user so it survives restarts."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_current_user(self) -> Optional[User]:
        raw = self.store.get(SESSION_KEY)
        if raw is None:
            return None
        try:
            return User.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding invalid session record: %s", exc)
            self.store.delete(SESSION_KEY)
            return None

    def set_current_user(self, user: User) -> None:
        self.store.set(SESSION_KEY, user.model_dump(mode="json"))

    def clear(self) -> None:
        self.store.delete(SESSION_KEY)
