"""Tracking history entries.

Each custody-affecting event is recorded as one immutable entry. The three
kinds carry different required fields, so they are separate models joined
into a union discriminated on ``action``:

    Created    from_office -> to_office   (to_office required)
    Forwarded  from_office -> to_office   (to_office required)
    Received   at from_office             (to_office always None)

Entries are append-only: nothing edits or removes an entry once written.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from docutrack.models.office import Office
from docutrack.models.user import ActingUser


class _TrackingEntryBase(BaseModel):
    from_office: Office
    timestamp: datetime
    user: ActingUser

    model_config = {"frozen": True}

    def _when(self) -> str:
        return self.timestamp.strftime("%b %d, %Y, %I:%M %p")


class CreatedEntry(_TrackingEntryBase):
    """Document created by ``user`` at ``from_office`` and sent to ``to_office``."""

    action: Literal["Created"] = "Created"
    to_office: Office

    @property
    def title(self) -> str:
        return "Document Created & Sent"

    def describe(self) -> str:
        return f"by {self.user.name} from {self.from_office.value} to {self.to_office.value}."


class ForwardedEntry(_TrackingEntryBase):
    """Document forwarded by ``user`` (recorded from the user's home office)."""

    action: Literal["Forwarded"] = "Forwarded"
    to_office: Office

    @property
    def title(self) -> str:
        return "Document Forwarded"

    def describe(self) -> str:
        return f"by {self.user.name} from {self.from_office.value} to {self.to_office.value}."


class ReceivedEntry(_TrackingEntryBase):
    """Custody acknowledged at ``from_office``; receipt has no destination."""

    action: Literal["Received"] = "Received"
    to_office: None = None

    @property
    def title(self) -> str:
        return "Document Received"

    def describe(self) -> str:
        return f"by {self.user.name} at {self.from_office.value}."


TrackingEntry = Annotated[
    Union[CreatedEntry, ForwardedEntry, ReceivedEntry],
    Field(discriminator="action"),
]

_entry_adapter: TypeAdapter = TypeAdapter(TrackingEntry)


def parse_entry(data: dict) -> Union[CreatedEntry, ForwardedEntry, ReceivedEntry]:
    """Validate a serialized entry into its concrete variant."""
    return _entry_adapter.validate_python(data)


def format_entry(entry: Union[CreatedEntry, ForwardedEntry, ReceivedEntry]) -> str:
    """One-line rendering used by history listings."""
    return f"{entry._when()}  {entry.title} {entry.describe()}"


def destination_of(entry: Union[CreatedEntry, ForwardedEntry, ReceivedEntry]) -> Optional[Office]:
    """Office the entry moved custody to, or None for receipts."""
    if isinstance(entry, (CreatedEntry, ForwardedEntry)):
        return entry.to_office
    return None
