"""User persistence layer.

Registered users are stored as a JSON list under the "users" key.

Design Decisions:
- Users are append-only (never deleted or modified after creation)
- Name lookups are case-insensitive for collision checks, exact for login
- Invalid stored records are skipped with a warning
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from docutrack.models.user import User
from docutrack.repositories.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

USERS_KEY = "users"


class UserRepository:
    """Key-value backed store of registered users."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._users: List[User] = self._load()

    def _load(self) -> List[User]:
        raw = self.store.get(USERS_KEY)
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("Stored users record is not a list; starting empty")
            return []
        users = []
        for item in raw:
            try:
                users.append(User.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping invalid stored user: %s", exc)
        return users

    def _persist(self) -> None:
        self.store.set(USERS_KEY, [user.model_dump(mode="json") for user in self._users])

    def list_all(self) -> List[User]:
        return list(self._users)

    def is_empty(self) -> bool:
        return not self._users

    def create_user(self, user: User) -> User:
        """Append a new user.

        Raises:
            ValueError: If a user with the same id already exists
        """
        if self.get_user_by_id(user.id) is not None:
            raise ValueError(f"User id already exists: {user.id}")
        self._users.append(user)
        self._persist()
        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        for user in self._users:
            if user.id == user_id:
                return user
        return None

    def find_by_name_casefold(self, name: str) -> Optional[User]:
        """Case-insensitive name lookup used for registration collisions."""
        target = name.strip().lower()
        for user in self._users:
            if user.name.lower() == target:
                return user
        return None

    def find_by_credentials(self, name: str, credential: str) -> Optional[User]:
        """Exact name and credential match."""
        for user in self._users:
            if user.name == name and user.credential == credential:
                return user
        return None
