from __future__ import annotations

from django.db import models

from dt_core.common.models import BaseModel


class DocumentType(models.TextChoices):
    DRUG_TEST_REPORT = "drug-test-report", "Drug Test Report"
    CONFIRMATION_REPORT = "confirmation-report", "Confirmation Report"
    OTHER = "other", "Other"


class PrivateDocument(BaseModel):
    """
    Non-public upload (lab reports). Bytes live in the configured storage
    under private/; this row is the metadata.
    """
    file = models.FileField(upload_to="private/", blank=True)
    filename = models.CharField(max_length=255, blank=True, default="")
    mime_type = models.CharField(max_length=128, blank=True, default="application/pdf")
    document_type = models.CharField(
        max_length=32,
        choices=DocumentType.choices,
        default=DocumentType.DRUG_TEST_REPORT,
        db_index=True,
    )

    class Meta:
        db_table = "documents_private_document"

    def __str__(self) -> str:
        return self.filename or str(self.id)
