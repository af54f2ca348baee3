"""Models package for DocuTrack.

Office/Status: static organizational configuration
User/ActingUser: identity
CreatedEntry/ForwardedEntry/ReceivedEntry: tracking history variants
Document/DocumentFields/Attachment: the tracked document
"""

from docutrack.models.document import Attachment, Document, DocumentFields
from docutrack.models.events import DocumentCreated
from docutrack.models.office import Office, Status
from docutrack.models.tracking import (
    CreatedEntry,
    ForwardedEntry,
    ReceivedEntry,
    TrackingEntry,
)
from docutrack.models.user import ActingUser, User

__all__ = [
    "ActingUser",
    "Attachment",
    "CreatedEntry",
    "Document",
    "DocumentCreated",
    "DocumentFields",
    "ForwardedEntry",
    "Office",
    "ReceivedEntry",
    "Status",
    "TrackingEntry",
    "User",
]
