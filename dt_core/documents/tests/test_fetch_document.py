# dt_core/documents/tests/test_fetch_document.py
import uuid

import pytest

from dt_core.documents.models import PrivateDocument
from dt_core.documents.services import DocumentNotFound, DocumentService

pytestmark = pytest.mark.django_db


def test_fetch_returns_bytes_and_metadata(make_document):
    doc = make_document(filename="lab-report.pdf", content=b"%PDF-1.7 report")

    fetched = DocumentService.fetch_document(document_id=doc.id)

    assert fetched.content == b"%PDF-1.7 report"
    assert fetched.filename == "lab-report.pdf"
    assert fetched.mime_type == "application/pdf"


def test_mime_type_is_guessed_from_filename(make_document):
    doc = make_document(filename="scan.png", content=b"\x89PNG")
    assert doc.mime_type == "image/png"


def test_unknown_id_raises():
    missing = uuid.uuid4()
    with pytest.raises(DocumentNotFound) as exc:
        DocumentService.fetch_document(document_id=missing)
    assert exc.value.document_id == missing


def test_row_without_filename_raises():
    doc = PrivateDocument.objects.create(filename="")
    with pytest.raises(DocumentNotFound):
        DocumentService.fetch_document(document_id=doc.id)


def test_deleted_file_raises(make_document):
    doc = make_document()
    doc.file.storage.delete(doc.file.name)

    with pytest.raises(DocumentNotFound) as exc:
        DocumentService.fetch_document(document_id=doc.id)
    assert "unreadable" in exc.value.reason


def test_empty_file_raises(make_document):
    doc = make_document(content=b"")
    with pytest.raises(DocumentNotFound) as exc:
        DocumentService.fetch_document(document_id=doc.id)
    assert "empty" in exc.value.reason
