import pytest

from docutrack.errors import DocuTrackError, Unauthenticated
from docutrack.models.document import DocumentFields
from docutrack.models.office import Office
from docutrack.models.tracking import ReceivedEntry
from docutrack.services.bulk_coordinator import NO_ELIGIBLE_MESSAGE, Selection


def _create(engine, owner, title, destination):
    return engine.create(owner, DocumentFields(title=title), destination)


def test_bulk_receive_only_transitions_eligible_documents(engine, coordinator, fou_user, odm_user):
    mine = _create(engine, fou_user, "For ODM", Office.ODM)
    elsewhere = _create(engine, fou_user, "For COA", Office.COA)

    result = coordinator.bulk_receive([mine.id, elsewhere.id], odm_user)

    assert result.received_count == 1
    assert result.received_ids == [mine.id]
    assert result.skipped_ids == [elsewhere.id]
    assert result.message == "Successfully received 1 document(s)."
    assert engine.get(mine.id).is_received
    assert isinstance(engine.get(mine.id).latest_entry, ReceivedEntry)
    assert engine.get(elsewhere.id) == elsewhere


def test_bulk_receive_with_nothing_eligible_is_a_no_op(engine, coordinator, fou_user, odm_user):
    elsewhere = _create(engine, fou_user, "For COA", Office.COA)
    already = engine.receive(_create(engine, fou_user, "Done", Office.ODM), odm_user)

    result = coordinator.bulk_receive([elsewhere.id, already.id], odm_user)

    assert result.no_op
    assert result.message == NO_ELIGIBLE_MESSAGE
    assert engine.get(already.id).tracking_history == already.tracking_history


def test_admin_bulk_receive_covers_every_office(engine, coordinator, fou_user, admin_user):
    first = _create(engine, fou_user, "One", Office.ODM)
    second = _create(engine, fou_user, "Two", Office.COA)

    result = coordinator.bulk_receive(iter([first.id, second.id]), admin_user)

    assert result.received_count == 2
    assert engine.get(second.id).latest_entry.from_office == Office.COA


def test_bulk_actions_require_a_user(coordinator):
    with pytest.raises(Unauthenticated):
        coordinator.bulk_receive(["x"], None)
    with pytest.raises(Unauthenticated):
        coordinator.bulk_delete(["x"], None)


def test_bulk_delete_waits_for_confirmation(engine, coordinator, fou_user):
    doc = _create(engine, fou_user, "Old", Office.ODM)

    pending = coordinator.bulk_delete([doc.id], fou_user)

    assert pending.title == "Delete 1 Document(s)"
    assert pending.message == "Are you sure you want to delete 1 document(s)? This action cannot be undone."
    assert doc.id in engine.repository

    assert pending.confirm() == [doc.id]
    assert doc.id not in engine.repository
    assert pending.resolved


def test_cancelled_bulk_delete_keeps_documents(engine, coordinator, fou_user):
    doc = _create(engine, fou_user, "Keep", Office.ODM)

    pending = coordinator.bulk_delete([doc.id], fou_user)
    pending.cancel()

    assert doc.id in engine.repository
    with pytest.raises(DocuTrackError):
        pending.confirm()


def test_resolve_with_prompt(engine, coordinator, fou_user):
    docs = [_create(engine, fou_user, f"Doc {n}", Office.ODM) for n in range(2)]
    asked = []

    def prompt(title, message, documents):
        asked.append((title, [d.id for d in documents]))
        return True

    deleted = coordinator.bulk_delete([d.id for d in docs], fou_user).resolve_with(prompt)

    assert sorted(deleted) == sorted(d.id for d in docs)
    assert asked == [("Delete 2 Document(s)", [d.id for d in docs])]
    assert len(engine.repository) == 0


def test_selection_toggle_and_toggle_all(engine, fou_user):
    docs = [_create(engine, fou_user, f"Doc {n}", Office.ODM) for n in range(3)]
    selection = Selection()

    selection.toggle(docs[0].id)
    assert docs[0].id in selection
    selection.toggle(docs[0].id)
    assert len(selection) == 0

    selection.toggle_all(docs)
    assert selection.ids == [d.id for d in docs]
    selection.toggle_all(docs)
    assert len(selection) == 0

    selection.toggle_all(docs)
    selection.discard([docs[1].id])
    assert selection.ids == [docs[0].id, docs[2].id]
    selection.clear()
    assert selection.ids == []
