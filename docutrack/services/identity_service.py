"""Identity and session management.

Key Principles:
- Login matches name and credential exactly (plain equality, no hashing)
- Registration rejects names that collide case-insensitively
- Successful login or registration becomes the persisted session user
- An empty user store is bootstrapped with a single Admin-office user
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from pydantic import ValidationError

from docutrack.config import DEFAULT_ADMIN_CREDENTIAL, DEFAULT_ADMIN_ID, DEFAULT_ADMIN_NAME
from docutrack.errors import DuplicateIdentity, Unauthenticated, ValidationFailed
from docutrack.models.office import Office
from docutrack.models.user import User
from docutrack.repositories.document_repository import DocumentRepository
from docutrack.repositories.session_repository import SessionRepository
from docutrack.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class IdentityService:
    """Resolves credentials to users and tracks the session user."""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository,
        admin_name: str = DEFAULT_ADMIN_NAME,
        admin_credential: str = DEFAULT_ADMIN_CREDENTIAL,
    ):
        self.users = users
        self.sessions = sessions
        self.admin_name = admin_name
        self.admin_credential = admin_credential

    def ensure_seeded(self, documents: Optional[DocumentRepository] = None) -> Optional[User]:
        """Seed the bootstrap Admin user when no users exist.

        Args:
            documents: Document repository to reset to empty alongside seeding

        Returns:
            The seeded admin user, or None if users already existed
        """
        if not self.users.is_empty():
            return None
        admin = User(
            id=DEFAULT_ADMIN_ID,
            name=self.admin_name,
            office=Office.ADMIN,
            credential=self.admin_credential,
        )
        self.users.create_user(admin)
        if documents is not None:
            documents.reset()
        logger.info("Seeded bootstrap admin user %r", admin.name)
        return admin

    def login(self, name: str, credential: str) -> Optional[User]:
        """Start a session for the matching user.

        Returns:
            The user on success, None if no user matches
        """
        user = self.users.find_by_credentials(name, credential)
        if user is None:
            logger.info("Login failed for %r", name)
            return None
        self.sessions.set_current_user(user)
        logger.info("User %r logged in (%s)", user.name, user.office.value)
        return user

    def register(self, name: str, credential: str, office: Optional[Office]) -> User:
        """Create a user and start a session for it.

        Raises:
            ValidationFailed: If any field is missing or invalid
            DuplicateIdentity: If the name is taken (case-insensitive)
        """
        if not name or not name.strip() or not credential or office is None:
            raise ValidationFailed("All fields are required for registration.")
        name = name.strip()
        if self.users.find_by_name_casefold(name) is not None:
            raise DuplicateIdentity("A user with this name already exists.")

        try:
            candidate = User(id=str(uuid4()), name=name, office=office, credential=credential)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else None
            raise ValidationFailed(f"Invalid registration: {first['msg']}", field=field) from exc

        user = self.users.create_user(candidate)
        self.sessions.set_current_user(user)
        logger.info("Registered user %r at %s", user.name, user.office.value)
        return user

    def logout(self) -> None:
        self.sessions.clear()

    def current_user(self) -> Optional[User]:
        return self.sessions.get_current_user()

    def require_current_user(self) -> User:
        """Return the session user.

        Raises:
            Unauthenticated: If nobody is logged in
        """
        user = self.current_user()
        if user is None:
            raise Unauthenticated()
        return user
