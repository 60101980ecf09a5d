from rest_framework import serializers

from dt_core.alerts.models import AdminAlert


class AdminAlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdminAlert
        fields = [
            "id",
            "title",
            "severity",
            "alert_type",
            "message",
            "context",
            "resolved",
            "resolved_at",
            "resolved_by_user_id",
            "notes",
            "created_at",
            "updated_at",
        ]


class AlertResolveSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
