"""Services package for DocuTrack."""

from docutrack.services.bulk_coordinator import (
    BulkOperationCoordinator,
    BulkReceiveResult,
    PendingDeletion,
    Selection,
)
from docutrack.services.event_bus import EventBus
from docutrack.services.identity_service import IdentityService
from docutrack.services.routing_engine import RoutingEngine, ScanOutcome, ScanResult

__all__ = [
    "BulkOperationCoordinator",
    "BulkReceiveResult",
    "EventBus",
    "IdentityService",
    "PendingDeletion",
    "RoutingEngine",
    "ScanOutcome",
    "ScanResult",
    "Selection",
]
