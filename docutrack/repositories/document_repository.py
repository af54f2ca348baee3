"""Document persistence layer.

Single source of truth for custody and history. Documents live in memory
(keyed by id, insertion-ordered) and the whole set is written through to the
key-value store under "documents" after every change.

No business logic lives here: state transitions are built by RoutingEngine
and handed over as complete Document values.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from docutrack.models.document import Document
from docutrack.repositories.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

DOCUMENTS_KEY = "documents"


class DocumentRepository:
    """In-memory document set with write-through persistence.

    Storage Strategy:
        - All documents are loaded once at construction
        - Each mutation replaces the persisted list in one set() call
        - Records that fail validation on load are skipped with a warning
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._documents: Dict[str, Document] = {}
        self._load()

    def _load(self) -> None:
        raw = self.store.get(DOCUMENTS_KEY)
        if raw is None:
            return
        if not isinstance(raw, list):
            logger.warning("Stored documents record is not a list; starting empty")
            return

        for item in raw:
            try:
                document = Document.model_validate(item)
            except ValidationError as exc:
                logger.warning("Skipping invalid stored document: %s", exc)
                continue
            problems = document.invariant_violations()
            if problems:
                logger.warning(
                    "Stored document %s violates custody invariants: %s",
                    document.id,
                    "; ".join(problems),
                )
            self._documents[document.id] = document

        logger.info("Loaded %d document(s) from store", len(self._documents))

    def _persist(self) -> None:
        self.store.set(
            DOCUMENTS_KEY,
            [document.model_dump(mode="json") for document in self._documents.values()],
        )

    def list_all(self) -> List[Document]:
        """Return all documents in insertion order."""
        return list(self._documents.values())

    def get_by_id(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    def get_many(self, document_ids: Iterable[str]) -> List[Document]:
        """Resolve ids to documents, in repository order, ignoring unknown ids."""
        wanted = set(document_ids)
        return [doc for doc in self._documents.values() if doc.id in wanted]

    def save(self, document: Document) -> Document:
        """Insert a new document or replace the stored version with the same id."""
        self._documents[document.id] = document
        self._persist()
        return document

    def save_many(self, documents: Iterable[Document]) -> List[Document]:
        """Replace several documents and persist once."""
        saved = []
        for document in documents:
            self._documents[document.id] = document
            saved.append(document)
        if saved:
            self._persist()
        return saved

    def delete_many(self, document_ids: Iterable[str]) -> List[str]:
        """Remove documents permanently.

        Returns:
            Ids that were present and removed (unknown ids are ignored)
        """
        removed = [doc_id for doc_id in dict.fromkeys(document_ids) if doc_id in self._documents]
        for doc_id in removed:
            del self._documents[doc_id]
        if removed:
            self._persist()
        return removed

    def reset(self) -> None:
        """Drop every document (used when bootstrapping an empty system)."""
        self._documents.clear()
        self._persist()

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents
