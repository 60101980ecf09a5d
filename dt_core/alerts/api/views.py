from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from dt_core.alerts.api.serializers import AdminAlertSerializer, AlertResolveSerializer
from dt_core.alerts.selectors import alerts_qs
from dt_core.alerts.services import AlertService


class AdminAlertViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = AdminAlertSerializer
    filterset_fields = ["severity", "alert_type", "resolved"]
    ordering_fields = ["created_at", "severity"]
    search_fields = ["title", "message"]

    def get_queryset(self):
        return alerts_qs().order_by("-created_at")

    @action(methods=["POST"], detail=True, url_path="resolve")
    def resolve(self, request, pk=None):
        alert = self.get_object()
        ser = AlertResolveSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        alert = AlertService.resolve_alert(
            alert_id=alert.id,
            user_id=getattr(request.user, "id", None),
            notes=ser.validated_data.get("notes") or "",
        )
        return Response(AdminAlertSerializer(alert).data, status=status.HTTP_200_OK)
