"""Document model: content, ownership, custody and tracking history.

Field groups:
- identity: id (immutable, unique)
- content: title, status, summary, content, attachment (editable)
- ownership: owner_id, owner_name, owner_office (captured at creation, immutable)
- custody: current_office, is_received, last_updated (changed only by RoutingEngine)
- history: tracking_history (append-only, first entry always Created)

Documents are treated as values. The RoutingEngine never mutates a stored
instance in place; it builds the next state with model_copy() and swaps it
into the repository, so a reader holding a reference never observes a
partially applied transition.

Custody invariants (checked by invariant_violations()):
    - history is non-empty and starts with a Created entry
    - is_received implies the last entry is Received at current_office
    - a trailing Created/Forwarded entry implies is_received is False
    - current_office equals to_office of the latest Created/Forwarded entry
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from docutrack.models.office import Office, Status
from docutrack.models.tracking import (
    CreatedEntry,
    ForwardedEntry,
    ReceivedEntry,
    TrackingEntry,
)


class Attachment(BaseModel):
    """File attached to a document, stored inline as base64."""

    file_name: str
    mime_type: str
    data: str = Field(..., description="Base64-encoded file content")

    model_config = {"frozen": True}

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class DocumentFields(BaseModel):
    """Editable content fields supplied on create and edit."""

    title: str = ""
    status: Status = Status.DRAFT
    summary: str = ""
    content: str = ""
    attachment: Optional[Attachment] = None

    def as_update(self) -> dict:
        """Field values keyed by name, keeping nested models as instances."""
        return {name: getattr(self, name) for name in type(self).model_fields}


CONTENT_FIELDS = tuple(DocumentFields.model_fields)


class Document(BaseModel):
    """A tracked document.

    Attributes:
        id: Unique identifier, also encoded in the tracking slip QR code
        title: Document title (required)
        status: Informational status tag
        summary: Short description (may be AI-generated)
        content: Extracted or manually entered text
        attachment: Optional inline file
        owner_id: Creator's user id
        owner_name: Creator's name at creation time
        owner_office: Creator's office at creation time
        current_office: Office currently holding custody
        is_received: Whether current_office has acknowledged custody
        last_updated: Refreshed on every edit, forward and receive
        tracking_history: Chronological custody audit trail
    """

    id: str
    title: str
    status: Status = Status.DRAFT
    summary: str = ""
    content: str = ""
    attachment: Optional[Attachment] = None
    owner_id: str
    owner_name: str
    owner_office: Office
    current_office: Office
    is_received: bool = False
    last_updated: datetime
    tracking_history: List[TrackingEntry] = Field(..., min_length=1)

    @property
    def latest_entry(self) -> TrackingEntry:
        return self.tracking_history[-1]

    @property
    def creation_entry(self) -> TrackingEntry:
        return self.tracking_history[0]

    @property
    def created_at(self) -> datetime:
        return self.tracking_history[0].timestamp

    def fields(self) -> DocumentFields:
        """Current content fields as an editable DocumentFields."""
        return DocumentFields(**{name: getattr(self, name) for name in CONTENT_FIELDS})

    def matches(self, search_term: str) -> bool:
        """Case-insensitive substring match over title and owner name."""
        needle = search_term.lower()
        return needle in self.title.lower() or needle in self.owner_name.lower()

    def invariant_violations(self) -> List[str]:
        """Return descriptions of violated custody invariants (empty if consistent)."""
        problems: List[str] = []
        history = self.tracking_history
        if not history:
            return ["tracking history is empty"]
        if not isinstance(history[0], CreatedEntry):
            problems.append("first tracking entry is not Created")
        if any(isinstance(entry, CreatedEntry) for entry in history[1:]):
            problems.append("Created entry appears after the first position")

        last = history[-1]
        if self.is_received:
            if not isinstance(last, ReceivedEntry):
                problems.append("is_received is set but last entry is not Received")
            elif last.from_office != self.current_office:
                problems.append("last Received entry is not at current_office")
        elif isinstance(last, ReceivedEntry):
            problems.append("last entry is Received but is_received is not set")

        routed = [e for e in history if isinstance(e, (CreatedEntry, ForwardedEntry))]
        if routed and routed[-1].to_office != self.current_office:
            problems.append("current_office differs from the latest routing destination")
        return problems
