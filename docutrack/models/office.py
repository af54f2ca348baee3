"""Static organizational configuration: offices and document status tags."""

from __future__ import annotations

from enum import Enum
from typing import List


class Office(str, Enum):
    """Fixed organizational units that hold document custody.

    Declaration order is significant: grouped views iterate offices in
    this order. ADMIN is the privileged office whose members may act on
    documents regardless of current custody.
    """

    ADMIN = "ADMIN OFFICE"
    ODM = "ODM"
    PROPERTY_UNIT = "PROPERTY UNIT"
    PGRCUD = "PGRCUD"
    NFPDD = "NFPDD"
    PERSONNEL = "PERSONNEL"
    COA = "COA"
    ACCOUNTING_UNIT = "ACCOUNTING UNIT"
    DISBURSING_UNIT = "DISBURSING UNIT"
    FOU = "FOU"

    @classmethod
    def ordered(cls) -> List[Office]:
        return list(cls)

    @classmethod
    def parse(cls, raw: str) -> Office:
        """Resolve an office from its value or member name, case-insensitively.

        Raises:
            ValueError: If no office matches
        """
        needle = raw.strip().upper()
        for office in cls:
            if needle in (office.value, office.name, office.name.replace("_", " ")):
                return office
        raise ValueError(f"Unknown office: {raw!r}")

    def __str__(self) -> str:
        return self.value


class Status(str, Enum):
    """Informational lifecycle tag; does not drive routing."""

    DRAFT = "Draft"
    IN_REVIEW = "In Review"
    APPROVED = "Approved"
    ARCHIVED = "Archived"

    @classmethod
    def parse(cls, raw: str) -> Status:
        needle = raw.strip().lower().replace("_", " ")
        for status in cls:
            if needle == status.value.lower():
                return status
        raise ValueError(f"Unknown status: {raw!r}")

    def __str__(self) -> str:
        return self.value
