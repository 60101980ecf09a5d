# dt_core/documents/services.py
from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from uuid import UUID

from django.core.files.base import ContentFile
from django.db import transaction

from dt_core.documents.models import DocumentType, PrivateDocument

logger = logging.getLogger(__name__)


class DocumentNotFound(Exception):
    """
    The document row or its stored bytes are missing.
    Callers treat this as a data integrity failure, not a pending upload.
    """

    def __init__(self, document_id, reason: str):
        super().__init__(f"Document {document_id} unavailable: {reason}")
        self.document_id = document_id
        self.reason = reason


@dataclass(frozen=True)
class FetchedDocument:
    content: bytes
    filename: str
    mime_type: str


class DocumentService:
    @staticmethod
    @transaction.atomic
    def create_document(
        *,
        filename: str,
        content: bytes,
        mime_type: str | None = None,
        document_type: str = DocumentType.DRUG_TEST_REPORT,
    ) -> PrivateDocument:
        doc = PrivateDocument(
            filename=filename,
            mime_type=mime_type or mimetypes.guess_type(filename)[0] or "application/pdf",
            document_type=document_type,
        )
        doc.file.save(filename, ContentFile(content), save=False)
        doc.save()
        return doc

    @staticmethod
    def fetch_document(*, document_id: UUID) -> FetchedDocument:
        """
        Load a document's bytes from whatever storage backs the file field
        (local disk in development, object storage in production).
        """
        doc = PrivateDocument.objects.filter(id=document_id).first()
        if doc is None or not doc.filename or not doc.file:
            logger.error(
                "Document fetch failed - not found in database (document_id=%s exists=%s)",
                document_id,
                doc is not None,
            )
            raise DocumentNotFound(document_id, "record missing or has no filename")

        try:
            with doc.file.open("rb") as fh:
                content = fh.read()
        except (FileNotFoundError, OSError) as e:
            logger.error("Document fetch failed - file unreadable: %s (%s)", doc.file.name, e)
            raise DocumentNotFound(document_id, f"file unreadable: {doc.file.name}") from e

        if not content:
            raise DocumentNotFound(document_id, f"file is empty: {doc.file.name}")

        logger.info("Fetched document %s (%s, %d bytes)", document_id, doc.filename, len(content))
        return FetchedDocument(
            content=content,
            filename=doc.filename,
            mime_type=doc.mime_type or "application/pdf",
        )
