import pytest

from docutrack.errors import (
    AlreadyReceived,
    ExternalServiceFailure,
    InvalidTransition,
    NotFound,
    Unauthenticated,
    ValidationFailed,
    WrongOffice,
)
from docutrack.models.document import Attachment, DocumentFields
from docutrack.models.events import DocumentCreated
from docutrack.models.office import Office, Status
from docutrack.models.tracking import CreatedEntry, ForwardedEntry, ReceivedEntry
from docutrack.services.routing_engine import ScanOutcome


def _memo(engine, owner, destination=Office.ODM, title="Memo"):
    return engine.create(owner, DocumentFields(title=title), destination)


def test_create_sends_document_to_destination(engine, fou_user):
    doc = _memo(engine, fou_user)

    assert doc.current_office == Office.ODM
    assert doc.is_received is False
    assert doc.owner_id == fou_user.id
    assert doc.owner_office == Office.FOU
    assert len(doc.tracking_history) == 1
    entry = doc.tracking_history[0]
    assert isinstance(entry, CreatedEntry)
    assert entry.from_office == Office.FOU
    assert entry.to_office == Office.ODM
    assert entry.user.id == fou_user.id
    assert doc.last_updated == entry.timestamp
    assert engine.repository.get_by_id(doc.id) == doc


def test_forward_by_admin_records_admin_office(engine, fou_user, admin_user):
    doc = _memo(engine, fou_user)

    forwarded = engine.forward(doc, admin_user, Office.PROPERTY_UNIT)

    assert forwarded.current_office == Office.PROPERTY_UNIT
    assert forwarded.is_received is False
    assert len(forwarded.tracking_history) == 2
    entry = forwarded.tracking_history[1]
    assert isinstance(entry, ForwardedEntry)
    assert entry.from_office == Office.ADMIN
    assert entry.to_office == Office.PROPERTY_UNIT


def test_scan_receive_then_repeat_reports_already_received(engine, fou_user, admin_user, property_user):
    doc = engine.forward(_memo(engine, fou_user), admin_user, Office.PROPERTY_UNIT)

    result = engine.scan_receive(doc.id, property_user)

    assert result.outcome is ScanOutcome.RECEIVED
    assert result.ok
    assert result.message == 'Success: Document "Memo" has been received at your office.'
    assert result.raise_for_outcome() == engine.get(doc.id)
    received = engine.get(doc.id)
    assert received.is_received is True
    assert len(received.tracking_history) == 3
    entry = received.tracking_history[2]
    assert isinstance(entry, ReceivedEntry)
    assert entry.from_office == Office.PROPERTY_UNIT
    assert entry.to_office is None

    again = engine.scan_receive(doc.id, property_user)
    assert again.outcome is ScanOutcome.ALREADY_RECEIVED
    assert again.message == 'Info: The document "Memo" has already been received.'
    assert len(engine.get(doc.id).tracking_history) == 3
    with pytest.raises(AlreadyReceived):
        again.raise_for_outcome()


def test_scan_receive_unknown_id(engine, odm_user):
    result = engine.scan_receive("  missing  ", odm_user)

    assert result.outcome is ScanOutcome.NOT_FOUND
    assert result.document_id == "missing"
    assert result.message == "Error: Document with this QR code not found."
    with pytest.raises(NotFound):
        result.raise_for_outcome()


def test_scan_receive_wrong_office_leaves_document_untouched(engine, fou_user, property_user):
    doc = _memo(engine, fou_user)

    result = engine.scan_receive(doc.id, property_user)

    assert result.outcome is ScanOutcome.WRONG_OFFICE
    assert result.message == "Error: This document is for the ODM, not your office (PROPERTY UNIT)."
    with pytest.raises(WrongOffice):
        result.raise_for_outcome()
    assert engine.get(doc.id) == doc


def test_scan_receive_is_not_open_to_admin_for_other_offices(engine, fou_user, admin_user):
    doc = _memo(engine, fou_user)

    result = engine.scan_receive(doc.id, admin_user)

    assert result.outcome is ScanOutcome.WRONG_OFFICE


def test_forward_after_receive_resets_receipt(engine, fou_user, odm_user):
    doc = engine.receive(_memo(engine, fou_user), odm_user)
    assert doc.is_received

    forwarded = engine.forward(doc, odm_user, Office.COA)

    assert forwarded.is_received is False
    assert len(forwarded.tracking_history) == len(doc.tracking_history) + 1
    assert isinstance(forwarded.latest_entry, ForwardedEntry)
    assert forwarded.latest_entry.from_office == Office.ODM


def test_forward_to_current_office_is_rejected(engine, fou_user, odm_user):
    doc = _memo(engine, fou_user)

    with pytest.raises(InvalidTransition) as exc_info:
        engine.forward(doc, odm_user, Office.ODM)

    assert exc_info.value.message == "Cannot forward a document to its current office."
    assert engine.get(doc.id).tracking_history == doc.tracking_history


def test_forward_requires_target(engine, fou_user, odm_user):
    doc = _memo(engine, fou_user)

    with pytest.raises(ValidationFailed):
        engine.forward(doc, odm_user, None)


def test_history_only_grows_and_starts_with_created(engine, fou_user, odm_user, admin_user):
    doc = _memo(engine, fou_user)
    lengths = [len(doc.tracking_history)]

    doc = engine.receive(doc, odm_user)
    lengths.append(len(doc.tracking_history))
    doc = engine.forward(doc, odm_user, Office.PERSONNEL)
    lengths.append(len(doc.tracking_history))
    doc = engine.edit(doc, DocumentFields(title="Memo v2"), odm_user)
    lengths.append(len(doc.tracking_history))
    doc = engine.forward(doc, admin_user, Office.FOU)
    lengths.append(len(doc.tracking_history))

    assert lengths == [1, 2, 3, 3, 4]
    assert isinstance(doc.tracking_history[0], CreatedEntry)
    assert doc.invariant_violations() == []


def test_edit_replaces_content_only(engine, fou_user, odm_user):
    doc = engine.receive(_memo(engine, fou_user), odm_user)
    attachment = Attachment(file_name="scan.png", mime_type="image/png", data="aGVsbG8=")

    edited = engine.edit(
        doc,
        DocumentFields(title="Memo (final)", status=Status.APPROVED, summary="s", attachment=attachment),
        fou_user,
    )

    assert edited.title == "Memo (final)"
    assert edited.status is Status.APPROVED
    assert edited.attachment == attachment
    assert edited.current_office == doc.current_office
    assert edited.is_received == doc.is_received
    assert edited.tracking_history == doc.tracking_history
    assert edited.last_updated > doc.last_updated


def test_create_validation_order(engine, fou_user):
    with pytest.raises(Unauthenticated):
        engine.create(None, DocumentFields(title=""), None)
    with pytest.raises(ValidationFailed) as title_err:
        engine.create(fou_user, DocumentFields(title="   "), None)
    assert title_err.value.message == "Title is required."
    with pytest.raises(ValidationFailed) as office_err:
        engine.create(fou_user, DocumentFields(title="Memo"), None)
    assert office_err.value.message == "Please select a destination office."
    assert len(engine.repository) == 0


@pytest.mark.parametrize("operation", ["edit", "forward", "receive", "scan", "delete"])
def test_operations_require_a_user(engine, fou_user, operation):
    doc = _memo(engine, fou_user)
    calls = {
        "edit": lambda: engine.edit(doc, DocumentFields(title="x"), None),
        "forward": lambda: engine.forward(doc, None, Office.COA),
        "receive": lambda: engine.receive(doc, None),
        "scan": lambda: engine.scan_receive(doc.id, None),
        "delete": lambda: engine.delete([doc.id], None),
    }

    with pytest.raises(Unauthenticated):
        calls[operation]()
    assert engine.get(doc.id) == doc


def test_delete_removes_document_and_history(engine, fou_user):
    keep = _memo(engine, fou_user, title="Keep")
    drop = _memo(engine, fou_user, title="Drop")

    removed = engine.delete([drop.id, "unknown"], fou_user)

    assert removed == [drop.id]
    assert engine.repository.list_all() == [keep]
    with pytest.raises(NotFound):
        engine.get(drop.id)


def test_transition_on_deleted_document_raises_not_found(engine, fou_user, odm_user):
    doc = _memo(engine, fou_user)
    engine.delete([doc.id], fou_user)

    with pytest.raises(NotFound):
        engine.receive(doc, odm_user)


def test_create_publishes_event_once(engine, event_bus, fou_user):
    seen = []
    event_bus.subscribe(DocumentCreated, seen.append)

    doc = _memo(engine, fou_user)

    assert [event.document_id for event in seen] == [doc.id]


def test_failing_subscriber_does_not_undo_create(engine, event_bus, fou_user):
    def broken_slip(event):
        raise ExternalServiceFailure("printer on fire", service="slip")

    event_bus.subscribe(DocumentCreated, broken_slip)

    doc = _memo(engine, fou_user)

    assert engine.get(doc.id) == doc


def test_documents_survive_reload(store, engine, fou_user, odm_user):
    from docutrack.repositories import DocumentRepository

    doc = engine.receive(_memo(engine, fou_user), odm_user)

    reloaded = DocumentRepository(store).get_by_id(doc.id)

    assert reloaded == doc
    assert isinstance(reloaded.tracking_history[1], ReceivedEntry)
