"""Bulk actions over a selection of documents.

Bulk Receive:
    - Filters the selection to documents the acting user may receive
      (held by their office, or any office for Admin, and not yet received)
    - An empty eligible set is reported as a no-op, distinct from success
    - Eligible documents are received and persisted in one write

Bulk Delete:
    - Resolves the selection to documents and returns a PendingDeletion
    - Nothing is removed until the pending deletion is confirmed

The caller owns the Selection and clears it after a successful action.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from docutrack.errors import DocuTrackError, Unauthenticated
from docutrack.models.document import Document
from docutrack.models.user import User
from docutrack.services.routing_engine import RoutingEngine

logger = logging.getLogger(__name__)

ConfirmationPrompt = Callable[[str, str, List[Document]], bool]

NO_ELIGIBLE_MESSAGE = "None of the selected documents are available to be received at your office."


@dataclass(frozen=True)
class BulkReceiveResult:
    received_count: int
    received_ids: List[str]
    skipped_ids: List[str]
    message: str

    @property
    def no_op(self) -> bool:
        return self.received_count == 0


class PendingDeletion:
    """A bulk delete awaiting confirmation.

    Resolved exactly once, by confirm() or cancel().
    """

    def __init__(self, engine: RoutingEngine, documents: List[Document], acting_user: User):
        self._engine = engine
        self._acting_user = acting_user
        self.documents = documents
        self._resolved = False
        self.deleted_ids: List[str] = []

    @property
    def count(self) -> int:
        return len(self.documents)

    @property
    def title(self) -> str:
        return f"Delete {self.count} Document(s)"

    @property
    def message(self) -> str:
        return (
            f"Are you sure you want to delete {self.count} document(s)? "
            "This action cannot be undone."
        )

    @property
    def resolved(self) -> bool:
        return self._resolved

    def confirm(self) -> List[str]:
        """Delete the pending documents; returns the ids removed."""
        self._ensure_open()
        self._resolved = True
        self.deleted_ids = self._engine.delete([doc.id for doc in self.documents], self._acting_user)
        return self.deleted_ids

    def cancel(self) -> None:
        self._ensure_open()
        self._resolved = True
        logger.info("Bulk delete of %d document(s) cancelled", self.count)

    def resolve_with(self, prompt: ConfirmationPrompt) -> List[str]:
        """Ask prompt(title, message, documents); delete on True, cancel on False."""
        if prompt(self.title, self.message, list(self.documents)):
            return self.confirm()
        self.cancel()
        return []

    def _ensure_open(self) -> None:
        if self._resolved:
            raise DocuTrackError("This deletion has already been resolved.")


class BulkOperationCoordinator:
    """Applies RoutingEngine operations to selected document sets."""

    def __init__(self, engine: RoutingEngine):
        self.engine = engine

    @property
    def repository(self):
        return self.engine.repository

    def bulk_receive(self, selected_ids: Iterable[str], acting_user: Optional[User]) -> BulkReceiveResult:
        """Receive every selected document the acting user is eligible to receive.

        Returns:
            BulkReceiveResult; no_op is True when nothing was eligible

        Raises:
            Unauthenticated: If acting_user is None
        """
        if acting_user is None:
            raise Unauthenticated()

        selected_ids = list(selected_ids)
        selected = self.repository.get_many(selected_ids)
        eligible = [
            doc for doc in selected
            if (doc.current_office == acting_user.office or acting_user.is_admin)
            and not doc.is_received
        ]
        eligible_ids = {doc.id for doc in eligible}
        skipped = [doc_id for doc_id in dict.fromkeys(selected_ids) if doc_id not in eligible_ids]

        if not eligible:
            logger.info("Bulk receive by %s: nothing eligible in %d selected", acting_user.name, len(skipped))
            return BulkReceiveResult(
                received_count=0, received_ids=[], skipped_ids=skipped, message=NO_ELIGIBLE_MESSAGE
            )

        received = self.engine.receive_many(eligible, acting_user)
        return BulkReceiveResult(
            received_count=len(received),
            received_ids=[doc.id for doc in received],
            skipped_ids=skipped,
            message=f"Successfully received {len(received)} document(s).",
        )

    def bulk_delete(self, selected_ids: Iterable[str], acting_user: Optional[User]) -> PendingDeletion:
        """Resolve the selection and hand it to a confirmation step.

        Raises:
            Unauthenticated: If acting_user is None
        """
        if acting_user is None:
            raise Unauthenticated()
        return PendingDeletion(self.engine, self.repository.get_many(selected_ids), acting_user)


@dataclass
class Selection:
    """Ordered set of selected document ids for bulk actions."""

    _ids: Dict[str, None] = field(default_factory=dict)

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._ids

    def toggle(self, document_id: str) -> None:
        if document_id in self._ids:
            del self._ids[document_id]
        else:
            self._ids[document_id] = None

    def toggle_all(self, visible: Iterable[Document]) -> None:
        """Select every visible document, or clear if all are already selected."""
        visible_ids = [doc.id for doc in visible]
        if len(self._ids) == len(visible_ids):
            self.clear()
        else:
            self._ids = dict.fromkeys(visible_ids)

    def discard(self, document_ids: Iterable[str]) -> None:
        for doc_id in document_ids:
            self._ids.pop(doc_id, None)

    def clear(self) -> None:
        self._ids.clear()
