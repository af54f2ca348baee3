"""User identity model.

Design Decisions:
- id is a UUID string assigned once at registration (the bootstrap
  admin uses the fixed id "admin-user")
- office establishes home-office membership for routing
- credential is compared by plain equality (no security model)
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from docutrack.models.office import Office


class ActingUser(BaseModel):
    """The {id, name} snapshot of a user recorded on tracking entries."""

    id: str
    name: str

    model_config = {"frozen": True}


class User(BaseModel):
    """Registered user.

    Attributes:
        id: Immutable identifier
        name: Display and login name (unique, case-insensitive)
        office: Home office
        credential: Login credential
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    office: Office
    credential: str = Field(..., description="Plain login credential")

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.office == Office.ADMIN

    def as_actor(self) -> ActingUser:
        return ActingUser(id=self.id, name=self.name)
