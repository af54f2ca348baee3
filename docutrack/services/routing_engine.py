"""Document routing and tracking state machine.

Custody lifecycle:

    create ──> [current_office = destination, is_received = False]
                 │
                 ├── receive ──> [is_received = True]
                 │                  │
                 └── forward <──────┘  [current_office = target, is_received = False]

    edit    content fields only, no custody change, no tracking entry
    delete  removes the document and its history permanently

Every custody operation appends exactly one tracking entry. Preconditions
are checked before any new state is built; the new Document is then stored
in a single repository call, so a failed precondition leaves nothing behind.

Authorization is permissive at this layer: any authenticated caller may
forward, receive, edit or delete any document. The row_actions() predicates
in view_projection decide what a user interface offers.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional
from uuid import uuid4

from docutrack.errors import (
    AlreadyReceived,
    InvalidTransition,
    NotFound,
    Unauthenticated,
    ValidationFailed,
    WrongOffice,
)
from docutrack.models.document import Document, DocumentFields
from docutrack.models.events import DocumentCreated
from docutrack.models.office import Office
from docutrack.models.tracking import CreatedEntry, ForwardedEntry, ReceivedEntry
from docutrack.models.user import User
from docutrack.repositories.document_repository import DocumentRepository
from docutrack.services.event_bus import EventBus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScanOutcome(str, enum.Enum):
    RECEIVED = "RECEIVED"
    NOT_FOUND = "NOT_FOUND"
    WRONG_OFFICE = "WRONG_OFFICE"
    ALREADY_RECEIVED = "ALREADY_RECEIVED"


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a scan-to-receive attempt.

    Attributes:
        outcome: Which branch the scan took
        message: User-facing message for the outcome
        document: The received document on success, the looked-up document
                  for WRONG_OFFICE/ALREADY_RECEIVED, None for NOT_FOUND
        document_id: The scanned id
    """

    outcome: ScanOutcome
    message: str
    document_id: str
    document: Optional[Document] = None

    @property
    def ok(self) -> bool:
        return self.outcome is ScanOutcome.RECEIVED

    def raise_for_outcome(self) -> Document:
        """Return the received document, or raise the matching error."""
        if self.outcome is ScanOutcome.NOT_FOUND:
            raise NotFound(self.message, document_id=self.document_id)
        if self.outcome is ScanOutcome.WRONG_OFFICE:
            raise WrongOffice(self.message, document_id=self.document_id)
        if self.outcome is ScanOutcome.ALREADY_RECEIVED:
            raise AlreadyReceived(self.message, document_id=self.document_id)
        return self.document


class RoutingEngine:
    """Applies custody transitions and records tracking entries.

    Architecture:
        CLI / BulkOperationCoordinator
            ↓
        RoutingEngine (this class) <- preconditions + next-state construction
            ↓                   ↘
        DocumentRepository       EventBus (DocumentCreated -> slip generation)
    """

    def __init__(
        self,
        repository: DocumentRepository,
        event_bus: Optional[EventBus] = None,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ):
        """Initialize engine with collaborators.

        Args:
            repository: DocumentRepository holding all documents
            event_bus: Receives DocumentCreated after each create. If None,
                       a private bus with no subscribers is used.
            clock: Source of timestamps for last_updated and tracking entries
            id_factory: Generates new document ids
        """
        self.repository = repository
        self.event_bus = event_bus or EventBus()
        self.clock = clock
        self.id_factory = id_factory

    # -----------------
    # Queries
    # -----------------
    def get(self, document_id: str) -> Document:
        """Return the stored document.

        Raises:
            NotFound: If no document has this id
        """
        document = self.repository.get_by_id(document_id)
        if document is None:
            raise NotFound(document_id=document_id)
        return document

    # -----------------
    # Transitions
    # -----------------
    def create(
        self,
        owner_user: Optional[User],
        fields: DocumentFields,
        destination_office: Optional[Office],
    ) -> Document:
        """Create a document and send it to destination_office.

        Returns:
            The stored document: current_office = destination, not received,
            history = [Created from owner's office to destination]

        Raises:
            Unauthenticated: If owner_user is None
            ValidationFailed: If the title or destination office is missing

        Side Effects:
            Publishes DocumentCreated after the document is stored. Subscriber
            failures are logged by the event bus and do not undo creation.
        """
        owner = self._require_user(owner_user)
        self._validate_fields(fields)
        if destination_office is None:
            raise ValidationFailed("Please select a destination office.", field="destination_office")

        now = self.clock()
        document = Document(
            id=self.id_factory(),
            **fields.as_update(),
            owner_id=owner.id,
            owner_name=owner.name,
            owner_office=owner.office,
            current_office=destination_office,
            is_received=False,
            last_updated=now,
            tracking_history=[
                CreatedEntry(
                    from_office=owner.office,
                    to_office=destination_office,
                    timestamp=now,
                    user=owner.as_actor(),
                )
            ],
        )
        self.repository.save(document)
        logger.info(
            "Created document %s by %s (%s) -> %s",
            document.id, owner.name, owner.office.value, destination_office.value,
        )

        self.event_bus.publish(DocumentCreated(document=document, occurred_at=now))
        return document

    def edit(self, document: Document, fields: DocumentFields, acting_user: Optional[User]) -> Document:
        """Replace a document's content fields.

        Custody fields and history are untouched; last_updated is refreshed.

        Raises:
            Unauthenticated: If acting_user is None
            ValidationFailed: If the title is missing
            NotFound: If the document is no longer stored
        """
        self._require_user(acting_user)
        self._validate_fields(fields)
        current = self.get(document.id)

        updated = current.model_copy(update={**fields.as_update(), "last_updated": self.clock()})
        self.repository.save(updated)
        logger.info("Edited document %s", updated.id)
        return updated

    def forward(self, document: Document, acting_user: Optional[User], target_office: Optional[Office]) -> Document:
        """Move custody of a document to target_office.

        The Forwarded entry's from_office is the acting user's home office,
        which for Admin users differs from the document's current office.

        Raises:
            Unauthenticated: If acting_user is None
            ValidationFailed: If target_office is missing
            InvalidTransition: If target_office is the current office
            NotFound: If the document is no longer stored
        """
        user = self._require_user(acting_user)
        if target_office is None:
            raise ValidationFailed("Please select a destination office.", field="target_office")
        current = self.get(document.id)
        if target_office == current.current_office:
            raise InvalidTransition(
                "Cannot forward a document to its current office.", document_id=current.id
            )

        now = self.clock()
        entry = ForwardedEntry(
            from_office=user.office,
            to_office=target_office,
            timestamp=now,
            user=user.as_actor(),
        )
        updated = current.model_copy(update={
            "current_office": target_office,
            "is_received": False,
            "last_updated": now,
            "tracking_history": [*current.tracking_history, entry],
        })
        self.repository.save(updated)
        logger.info(
            "Forwarded document %s by %s: %s -> %s",
            updated.id, user.name, current.current_office.value, target_office.value,
        )
        return updated

    def receive(self, document: Document, acting_user: Optional[User]) -> Document:
        """Acknowledge custody of a document at its current office.

        No custody eligibility check is made here; callers decide who may
        receive (see scan_receive and BulkOperationCoordinator).

        Raises:
            Unauthenticated: If acting_user is None
            NotFound: If the document is no longer stored
        """
        user = self._require_user(acting_user)
        current = self.get(document.id)
        updated = self._received_state(current, user)
        self.repository.save(updated)
        logger.info("Received document %s at %s by %s", updated.id, updated.current_office.value, user.name)
        return updated

    def receive_many(self, documents: Iterable[Document], acting_user: Optional[User]) -> List[Document]:
        """Receive several documents and persist them in one write."""
        user = self._require_user(acting_user)
        updated = [self._received_state(self.get(doc.id), user) for doc in documents]
        self.repository.save_many(updated)
        for doc in updated:
            logger.info("Received document %s at %s by %s", doc.id, doc.current_office.value, user.name)
        return updated

    def scan_receive(self, document_id: str, acting_user: Optional[User]) -> ScanResult:
        """Receive a document identified by a scanned QR code.

        Checks, in order: the document exists, it is held by the acting
        user's office, and it has not been received yet.

        Returns:
            ScanResult whose outcome distinguishes success from NOT_FOUND,
            WRONG_OFFICE and ALREADY_RECEIVED

        Raises:
            Unauthenticated: If acting_user is None
        """
        user = self._require_user(acting_user)
        document_id = document_id.strip()
        document = self.repository.get_by_id(document_id)

        if document is None:
            return ScanResult(
                outcome=ScanOutcome.NOT_FOUND,
                message="Error: Document with this QR code not found.",
                document_id=document_id,
            )
        if document.current_office != user.office:
            return ScanResult(
                outcome=ScanOutcome.WRONG_OFFICE,
                message=(
                    f"Error: This document is for the {document.current_office.value}, "
                    f"not your office ({user.office.value})."
                ),
                document_id=document_id,
                document=document,
            )
        if document.is_received:
            return ScanResult(
                outcome=ScanOutcome.ALREADY_RECEIVED,
                message=f'Info: The document "{document.title}" has already been received.',
                document_id=document_id,
                document=document,
            )

        received = self.receive(document, user)
        return ScanResult(
            outcome=ScanOutcome.RECEIVED,
            message=f'Success: Document "{received.title}" has been received at your office.',
            document_id=document_id,
            document=received,
        )

    def delete(self, document_ids: Iterable[str], acting_user: Optional[User]) -> List[str]:
        """Permanently remove documents and their history.

        Returns:
            Ids actually removed (unknown ids are ignored)

        Raises:
            Unauthenticated: If acting_user is None
        """
        user = self._require_user(acting_user)
        removed = self.repository.delete_many(document_ids)
        if removed:
            logger.info("Deleted %d document(s) by %s: %s", len(removed), user.name, ", ".join(removed))
        return removed

    # -----------------
    # Internal helpers
    # -----------------
    def _received_state(self, document: Document, user: User) -> Document:
        now = self.clock()
        entry = ReceivedEntry(
            from_office=document.current_office,
            timestamp=now,
            user=user.as_actor(),
        )
        return document.model_copy(update={
            "is_received": True,
            "last_updated": now,
            "tracking_history": [*document.tracking_history, entry],
        })

    @staticmethod
    def _require_user(user: Optional[User]) -> User:
        if user is None:
            raise Unauthenticated()
        return user

    @staticmethod
    def _validate_fields(fields: DocumentFields) -> None:
        if not fields.title or not fields.title.strip():
            raise ValidationFailed("Title is required.", field="title")
