"""DocuTrack error types.

Every failure a caller may need to tell apart has its own subclass of
DocuTrackError. Precondition failures are raised before any document state
is touched, so catching one of these never leaves a half-applied transition.
"""

from __future__ import annotations

from typing import Optional


class DocuTrackError(Exception):
    """Base exception for routing, identity and collaborator failures.

    Attributes:
        message: Human-readable error message (safe to show to a user).
        document_id: Document the failure relates to (if applicable).
    """

    def __init__(self, message: str, *, document_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.document_id = document_id

    def __str__(self) -> str:
        if self.document_id:
            return f"{self.message} document_id={self.document_id}"
        return self.message


class Unauthenticated(DocuTrackError):
    """Raised when an operation is attempted without an acting user."""

    def __init__(self, message: str = "You must be logged in to perform this action.") -> None:
        super().__init__(message)


class ValidationFailed(DocuTrackError):
    """Raised when a required field is missing or malformed."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidTransition(DocuTrackError):
    """Raised when a custody transition is not allowed (e.g. self-forward)."""


class NotFound(DocuTrackError):
    """Raised when a document id does not resolve to a stored document."""

    def __init__(self, message: str = "Document not found.", *, document_id: Optional[str] = None) -> None:
        super().__init__(message, document_id=document_id)


class WrongOffice(DocuTrackError):
    """Raised when a scanned document is held by another office."""


class AlreadyReceived(DocuTrackError):
    """Raised when a scanned document has already been receipted."""


class DuplicateIdentity(DocuTrackError):
    """Raised when registering a name that already exists (case-insensitive)."""


class ExternalServiceFailure(DocuTrackError):
    """Raised when summary, slip or scanner collaborators fail.

    Attributes:
        service: Name of the failing collaborator ("summary", "slip", "scanner").
    """

    def __init__(self, message: str, *, service: str, document_id: Optional[str] = None) -> None:
        super().__init__(message, document_id=document_id)
        self.service = service
