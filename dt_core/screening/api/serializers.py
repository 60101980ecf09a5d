# dt_core/screening/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from dt_core.screening.constants import ConfirmationDecision, ConfirmationOutcome, DocumentSlot, TestType
from dt_core.screening.models import DrugTest


class DrugTestSerializer(serializers.ModelSerializer):
    client_id = serializers.UUIDField(source="client.id", read_only=True)
    client_name = serializers.CharField(source="client.full_name", read_only=True)
    test_document_id = serializers.UUIDField(read_only=True)
    confirmation_document_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = DrugTest
        fields = [
            "id",
            "client_id",
            "client_name",
            "collection_date",
            "test_type",
            "screening_status",
            "is_inconclusive",
            "inconclusive_reason",
            "medications_snapshot",
            "detected_substances",
            "is_dilute",
            "expected_positives",
            "unexpected_positives",
            "unexpected_negatives",
            "initial_screen_result",
            "auto_accept",
            "confirmation_decision",
            "confirmation_requested_at",
            "confirmation_substances",
            "confirmation_results",
            "final_status",
            "is_complete",
            "breathalyzer_taken",
            "breathalyzer_result",
            "notifications_sent",
            "notifications_enabled",
            "test_document_id",
            "confirmation_document_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CollectionCreateSerializer(serializers.Serializer):
    client_id = serializers.UUIDField()
    test_type = serializers.ChoiceField(choices=TestType.choices)
    collection_date = serializers.DateTimeField(required=False, allow_null=True)
    breathalyzer_taken = serializers.BooleanField(required=False, default=False)
    breathalyzer_result = serializers.DecimalField(
        max_digits=5, decimal_places=3, required=False, allow_null=True, min_value=0
    )
    notifications_enabled = serializers.BooleanField(required=False, default=True)


class ScreenSerializer(serializers.Serializer):
    detected_substances = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    is_dilute = serializers.BooleanField(required=False, default=False)
    breathalyzer_taken = serializers.BooleanField(required=False, allow_null=True, default=None)
    breathalyzer_result = serializers.DecimalField(
        max_digits=5, decimal_places=3, required=False, allow_null=True, min_value=0
    )
    test_document_id = serializers.UUIDField(required=False, allow_null=True)


class ConfirmationDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=ConfirmationDecision.choices)
    substances = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class ConfirmationResultItemSerializer(serializers.Serializer):
    substance = serializers.CharField()
    result = serializers.ChoiceField(choices=ConfirmationOutcome.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ConfirmationResultsSerializer(serializers.Serializer):
    results = ConfirmationResultItemSerializer(many=True, allow_empty=False)
    confirmation_document_id = serializers.UUIDField(required=False, allow_null=True)


class InconclusiveSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class DocumentUploadSerializer(serializers.Serializer):
    slot = serializers.ChoiceField(choices=DocumentSlot.choices)
    file = serializers.FileField()


class StageOutcomeSerializer(serializers.Serializer):
    status = serializers.CharField()
    stage = serializers.CharField(allow_null=True)
    detail = serializers.CharField(allow_blank=True)
    sent_to = serializers.ListField(child=serializers.CharField())
    failed_recipients = serializers.ListField(child=serializers.CharField())
    history_recorded = serializers.BooleanField()
