# dt_core/screening/api/views.py
from __future__ import annotations

from dataclasses import asdict

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from dt_core.clients.models import Client
from dt_core.common.api.exceptions import ConflictError
from dt_core.documents.models import DocumentType
from dt_core.documents.services import DocumentService
from dt_core.notifications.stager import NotificationStager
from dt_core.screening.api.serializers import (
    CollectionCreateSerializer,
    ConfirmationDecisionSerializer,
    ConfirmationResultsSerializer,
    DocumentUploadSerializer,
    DrugTestSerializer,
    InconclusiveSerializer,
    ScreenSerializer,
    StageOutcomeSerializer,
)
from dt_core.screening.constants import DocumentSlot
from dt_core.screening.selectors import drug_tests_qs
from dt_core.screening.services import DrugTestService


class DrugTestViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = DrugTestSerializer
    parser_classes = [JSONParser, FormParser, MultiPartParser]
    filterset_fields = ["client", "test_type", "screening_status", "final_status", "is_complete"]
    ordering_fields = ["collection_date", "created_at"]
    search_fields = ["client__first_name", "client__last_name", "client__email"]

    def get_queryset(self):
        return drug_tests_qs().order_by("-collection_date", "-created_at")

    def create(self, request):
        ser = CollectionCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        if not Client.objects.filter(id=data["client_id"]).exists():
            return Response({"client_id": ["Client not found."]}, status=status.HTTP_400_BAD_REQUEST)

        test = DrugTestService.record_collection(
            client_id=data["client_id"],
            test_type=data["test_type"],
            collection_date=data.get("collection_date"),
            breathalyzer_taken=data.get("breathalyzer_taken", False),
            breathalyzer_result=data.get("breathalyzer_result"),
            notifications_enabled=data.get("notifications_enabled", True),
        )
        test.refresh_from_db()
        return Response(DrugTestSerializer(test).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="screen")
    def screen(self, request, pk=None):
        test = self.get_object()
        ser = ScreenSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            test = DrugTestService.record_screen(
                test_id=test.id,
                detected_substances=data["detected_substances"],
                is_dilute=data.get("is_dilute", False),
                breathalyzer_taken=data.get("breathalyzer_taken"),
                breathalyzer_result=data.get("breathalyzer_result"),
                test_document_id=data.get("test_document_id"),
            )
        except ValueError as e:
            raise ConflictError(detail=str(e))

        test.refresh_from_db()
        return Response(DrugTestSerializer(test).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="confirmation-decision")
    def confirmation_decision(self, request, pk=None):
        test = self.get_object()
        ser = ConfirmationDecisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            test = DrugTestService.decide_confirmation(
                test_id=test.id,
                decision=ser.validated_data["decision"],
                substances=ser.validated_data.get("substances") or [],
            )
        except ValueError as e:
            raise ConflictError(detail=str(e))

        test.refresh_from_db()
        return Response(DrugTestSerializer(test).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="confirmation-results")
    def confirmation_results(self, request, pk=None):
        test = self.get_object()
        ser = ConfirmationResultsSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            test = DrugTestService.record_confirmation_results(
                test_id=test.id,
                results=[dict(r) for r in ser.validated_data["results"]],
                confirmation_document_id=ser.validated_data.get("confirmation_document_id"),
            )
        except ValueError as e:
            raise ConflictError(detail=str(e))

        test.refresh_from_db()
        return Response(DrugTestSerializer(test).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="inconclusive")
    def inconclusive(self, request, pk=None):
        test = self.get_object()
        ser = InconclusiveSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            test = DrugTestService.mark_inconclusive(test_id=test.id, reason=ser.validated_data.get("reason") or "")
        except ValueError as e:
            raise ConflictError(detail=str(e))

        test.refresh_from_db()
        return Response(DrugTestSerializer(test).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="documents")
    def documents(self, request, pk=None):
        test = self.get_object()
        ser = DocumentUploadSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        slot = ser.validated_data["slot"]
        upload = ser.validated_data["file"]
        doc = DocumentService.create_document(
            filename=upload.name,
            content=upload.read(),
            mime_type=getattr(upload, "content_type", None),
            document_type=(
                DocumentType.CONFIRMATION_REPORT if slot == DocumentSlot.CONFIRMATION else DocumentType.DRUG_TEST_REPORT
            ),
        )
        test = DrugTestService.attach_document(test_id=test.id, document_id=doc.id, slot=slot)

        test.refresh_from_db()
        return Response(DrugTestSerializer(test).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="notify")
    def notify(self, request, pk=None):
        test = self.get_object()
        outcome = NotificationStager().run(test)
        return Response(StageOutcomeSerializer(asdict(outcome)).data, status=status.HTTP_200_OK)
