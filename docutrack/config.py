"""Environment-driven configuration.

Values are read once from the process environment (after loading a local
.env file) and collected in a frozen Settings object that is handed to
create_app(). Module-level defaults mirror the environment variable names.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_DATA_DIR = PACKAGE_DIR / "data"

DEFAULT_ADMIN_ID = "admin-user"
DEFAULT_ADMIN_NAME = "Admin"
DEFAULT_ADMIN_CREDENTIAL = "admin"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using default %d", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for a DocuTrack process.

    Attributes:
        db_path: SQLite file backing the key-value store (":memory:" allowed)
        slip_dir: Directory where tracking slip PDFs are written
        admin_name: Name of the bootstrap Admin-office user
        admin_credential: Credential of the bootstrap Admin-office user
        gemini_api_key: API key for summary generation (None disables it)
        gemini_model: Model used for summary generation
        gemini_retry_attempts: Attempts per summary request
        gemini_connect_timeout: HTTP connect timeout in seconds
        gemini_read_timeout: HTTP read timeout in seconds
        camera_index: OpenCV device index used by the QR scanner
        log_level: Root logging level name
    """

    db_path: str = str(DEFAULT_DATA_DIR / "docutrack.db")
    slip_dir: str = str(DEFAULT_DATA_DIR / "slips")
    admin_name: str = DEFAULT_ADMIN_NAME
    admin_credential: str = DEFAULT_ADMIN_CREDENTIAL
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_retry_attempts: int = 3
    gemini_connect_timeout: int = 5
    gemini_read_timeout: int = 30
    camera_index: int = 0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables."""
        return cls(
            db_path=os.getenv("DOCUTRACK_DB_PATH", cls.db_path),
            slip_dir=os.getenv("DOCUTRACK_SLIP_DIR", cls.slip_dir),
            admin_name=os.getenv("DOCUTRACK_ADMIN_NAME", DEFAULT_ADMIN_NAME),
            admin_credential=os.getenv("DOCUTRACK_ADMIN_CREDENTIAL", DEFAULT_ADMIN_CREDENTIAL),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            gemini_retry_attempts=max(1, _int_env("GEMINI_RETRY_ATTEMPTS", 3)),
            gemini_connect_timeout=_int_env("GEMINI_CONNECT_TIMEOUT", 5),
            gemini_read_timeout=_int_env("GEMINI_READ_TIMEOUT", 30),
            camera_index=_int_env("DOCUTRACK_CAMERA_INDEX", 0),
            log_level=os.getenv("DOCUTRACK_LOG_LEVEL", "INFO").upper(),
        )
