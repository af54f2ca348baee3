"""Derived document views.

Everything here is a pure function of (documents, acting user, view, search
term). Nothing is cached or stored; callers recompute whenever the document
set, the acting user or the active view changes.

Views:
    SENT      documents the user created
    INBOX     Admin: every document; others: received documents at their office
    RECEIVED  pending queue. Admin: every unreceived document (grouped by
              office); others: unreceived documents at their office
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from docutrack.models.document import Document
from docutrack.models.office import Office
from docutrack.models.user import User


class View(str, enum.Enum):
    INBOX = "inbox"
    SENT = "sent"
    RECEIVED = "received"

    def label_for(self, user: User) -> str:
        """Tab label as shown to this user."""
        if self is View.INBOX:
            return "All Documents" if user.is_admin else "Inbox"
        if self is View.SENT:
            return "Sent"
        return "Received Documents"


@dataclass(frozen=True)
class OfficeGroup:
    office: Office
    documents: List[Document]


@dataclass(frozen=True)
class ProjectedView:
    """A computed view: the flat ordered list plus optional office groups.

    groups is only set when an Admin user looks at the RECEIVED view.
    """

    view: View
    documents: List[Document]
    groups: Optional[List[OfficeGroup]] = None

    @property
    def is_grouped(self) -> bool:
        return self.groups is not None


@dataclass(frozen=True)
class RowActions:
    """Which actions a user interface should offer for one document row.

    These are display predicates only; RoutingEngine does not enforce them.
    """

    can_receive: bool
    can_edit: bool
    can_delete: bool
    can_forward: bool


def _select(documents: Iterable[Document], user: User, view: View) -> List[Document]:
    if view is View.SENT:
        return [doc for doc in documents if doc.owner_id == user.id]
    if view is View.INBOX:
        if user.is_admin:
            return list(documents)
        return [doc for doc in documents if doc.current_office == user.office and doc.is_received]
    if user.is_admin:
        return [doc for doc in documents if not doc.is_received]
    return [doc for doc in documents if doc.current_office == user.office and not doc.is_received]


def project(
    documents: Iterable[Document],
    acting_user: User,
    view: View,
    search_term: str = "",
) -> List[Document]:
    """Select, filter and order documents for a view.

    Args:
        documents: All documents
        acting_user: The user the view is computed for
        view: Which view to compute
        search_term: Case-insensitive substring matched against title and
                     owner name; empty matches everything

    Returns:
        Matching documents, most recently updated first
    """
    selected = _select(documents, acting_user, View(view))
    term = (search_term or "").lower()
    if term:
        selected = [doc for doc in selected if doc.matches(term)]
    return sorted(selected, key=lambda doc: doc.last_updated, reverse=True)


def group_by_office(documents: Iterable[Document]) -> List[OfficeGroup]:
    """Group documents by current office in Office declaration order.

    Order inside a group follows the input order; empty groups are omitted.
    """
    buckets: Dict[Office, List[Document]] = {office: [] for office in Office}
    for doc in documents:
        buckets[doc.current_office].append(doc)
    return [OfficeGroup(office=office, documents=docs) for office, docs in buckets.items() if docs]


def project_view(
    documents: Iterable[Document],
    acting_user: User,
    view: View,
    search_term: str = "",
) -> ProjectedView:
    """project() plus office grouping for the Admin pending queue."""
    view = View(view)
    ordered = project(documents, acting_user, view, search_term)
    groups = None
    if view is View.RECEIVED and acting_user.is_admin:
        groups = group_by_office(ordered)
    return ProjectedView(view=view, documents=ordered, groups=groups)


def row_actions(document: Document, acting_user: User) -> RowActions:
    is_owner = document.owner_id == acting_user.id
    is_admin = acting_user.is_admin
    at_my_office = document.current_office == acting_user.office

    can_receive = at_my_office and not document.is_received
    can_modify = (is_admin or (is_owner and at_my_office)) and not can_receive
    return RowActions(
        can_receive=can_receive,
        can_edit=can_modify,
        can_delete=can_modify,
        can_forward=(is_admin or at_my_office) and not can_receive,
    )


def view_counts(documents: Iterable[Document], acting_user: User) -> Dict[View, int]:
    """Badge counts per view tab (unfiltered by search)."""
    docs = list(documents)
    return {view: len(_select(docs, acting_user, view)) for view in View}
