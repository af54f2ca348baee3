import pytest

from docutrack.errors import ExternalServiceFailure
from docutrack.models.document import DocumentFields
from docutrack.models.events import DocumentCreated
from docutrack.models.office import Office
from docutrack.services.slip_service import TrackingSlipGenerator, slip_filename


@pytest.fixture
def document(engine, fou_user):
    return engine.create(fou_user, DocumentFields(title="Annual  Budget Memo"), Office.ODM)


def test_slip_filename_uses_title_and_id(document):
    assert slip_filename(document) == "DocuTrack-Slip-Annual_Budget_Memo-doc-1.pdf"


def test_render_produces_pdf(tmp_path, document):
    data = TrackingSlipGenerator(tmp_path).render(document)

    assert data.startswith(b"%PDF")


def test_generate_writes_into_output_dir(tmp_path, document):
    path = TrackingSlipGenerator(tmp_path / "slips").generate(document)

    assert path == tmp_path / "slips" / "DocuTrack-Slip-Annual_Budget_Memo-doc-1.pdf"
    assert path.read_bytes().startswith(b"%PDF")


def test_generate_reports_unwritable_directory(tmp_path, document):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")

    with pytest.raises(ExternalServiceFailure) as exc_info:
        TrackingSlipGenerator(blocker).generate(document)
    assert exc_info.value.service == "slip"
    assert exc_info.value.document_id == document.id


def test_slip_is_generated_once_per_create(app, fou_user, tmp_path):
    doc = app.engine.create(fou_user, DocumentFields(title="Travel Order"), Office.COA)

    slips = list((tmp_path / "slips").iterdir())
    assert [p.name for p in slips] == ["DocuTrack-Slip-Travel_Order-doc-1.pdf"]
    assert app.engine.get(doc.id) == doc


def test_slip_failure_does_not_undo_create(app, fou_user, monkeypatch):
    def fail(self, document):
        raise ExternalServiceFailure("disk full", service="slip", document_id=document.id)

    monkeypatch.setattr(TrackingSlipGenerator, "generate", fail)

    doc = app.engine.create(fou_user, DocumentFields(title="Memo"), Office.ODM)

    assert app.engine.get(doc.id) == doc
    assert app.event_bus.publish(DocumentCreated(document=doc)) == 0


def test_same_title_gets_one_slip_per_document(app, fou_user, tmp_path):
    first = app.engine.create(fou_user, DocumentFields(title="Memo"), Office.ODM)
    second = app.engine.create(fou_user, DocumentFields(title="Memo"), Office.COA)

    names = sorted(p.name for p in (tmp_path / "slips").iterdir())

    assert names == [f"DocuTrack-Slip-Memo-{first.id}.pdf", f"DocuTrack-Slip-Memo-{second.id}.pdf"]


@pytest.mark.parametrize("title", ["Q1/Q2 Report", "../../escaped", "a\\b:c*?"])
def test_unsafe_title_stays_in_slip_directory(app, fou_user, tmp_path, title):
    doc = app.engine.create(fou_user, DocumentFields(title=title), Office.ODM)

    slips = list((tmp_path / "slips").iterdir())

    assert len(slips) == 1
    assert slips[0].name == slip_filename(doc)
    assert "/" not in slips[0].name
    assert slips[0].read_bytes().startswith(b"%PDF")
