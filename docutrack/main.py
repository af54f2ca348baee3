"""Application assembly.

create_app() wires the key-value store, repositories and services into a
DocuTrackApp container, subscribes tracking slip generation to document
creation, and seeds the bootstrap admin when the user store is empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from docutrack.config import Settings
from docutrack.models.events import DocumentCreated
from docutrack.repositories import DocumentRepository, SessionRepository, SqliteKeyValueStore, UserRepository
from docutrack.services.bulk_coordinator import BulkOperationCoordinator
from docutrack.services.event_bus import EventBus
from docutrack.services.identity_service import IdentityService
from docutrack.services.routing_engine import RoutingEngine
from docutrack.services.slip_service import TrackingSlipGenerator
from docutrack.services.summary_service import SummaryGenerator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))


@dataclass
class DocuTrackApp:
    """Wired application services."""

    settings: Settings
    store: SqliteKeyValueStore
    documents: DocumentRepository
    users: UserRepository
    sessions: SessionRepository
    identity: IdentityService
    event_bus: EventBus
    engine: RoutingEngine
    bulk: BulkOperationCoordinator
    slips: TrackingSlipGenerator
    summaries: SummaryGenerator

    def close(self) -> None:
        self.store.close()


def create_app(settings: Optional[Settings] = None, **engine_kwargs) -> DocuTrackApp:
    """Build a DocuTrackApp.

    Args:
        settings: Runtime settings; defaults to Settings.from_env()
        **engine_kwargs: Passed to RoutingEngine (clock, id_factory)
    """
    settings = settings or Settings.from_env()

    store = SqliteKeyValueStore(db_path=settings.db_path)
    documents = DocumentRepository(store)
    users = UserRepository(store)
    sessions = SessionRepository(store)

    identity = IdentityService(
        users,
        sessions,
        admin_name=settings.admin_name,
        admin_credential=settings.admin_credential,
    )
    identity.ensure_seeded(documents)

    event_bus = EventBus()
    slips = TrackingSlipGenerator(settings.slip_dir)
    event_bus.subscribe(DocumentCreated, slips.on_document_created)

    engine = RoutingEngine(documents, event_bus=event_bus, **engine_kwargs)

    logger.info("DocuTrack ready (db=%s, %d document(s))", settings.db_path, len(documents))
    return DocuTrackApp(
        settings=settings,
        store=store,
        documents=documents,
        users=users,
        sessions=sessions,
        identity=identity,
        event_bus=event_bus,
        engine=engine,
        bulk=BulkOperationCoordinator(engine),
        slips=slips,
        summaries=SummaryGenerator.from_settings(settings),
    )
