# dt_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from dt_core.alerts.api.views import AdminAlertViewSet
from dt_core.screening.api.views import DrugTestViewSet

router = DefaultRouter()

router.register(r"drug-tests", DrugTestViewSet, basename="drug-tests")
router.register(r"alerts", AdminAlertViewSet, basename="alerts")

urlpatterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
