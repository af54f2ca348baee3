"""Domain events published by the RoutingEngine after a committed mutation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from docutrack.models.document import Document


@dataclass(frozen=True)
class DocumentCreated:
    """A new document was stored; carries the committed document state."""

    document: Document
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def document_id(self) -> str:
        return self.document.id
