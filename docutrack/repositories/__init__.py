"""Persistence layer: key-value store and the repositories built on it."""

from docutrack.repositories.document_repository import DocumentRepository
from docutrack.repositories.kv_store import KeyValueStore, SqliteKeyValueStore
from docutrack.repositories.session_repository import SessionRepository
from docutrack.repositories.user_repository import UserRepository

__all__ = [
    "DocumentRepository",
    "KeyValueStore",
    "SessionRepository",
    "SqliteKeyValueStore",
    "UserRepository",
]
