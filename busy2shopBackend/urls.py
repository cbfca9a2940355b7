"""
URL configuration for busy2shopBackend project.

Every API lives under /api/v0/; each app contributes a router of ViewSets.
"""

from django.urls import include, path

from marketplace.api.views.prometheus_metrics import prometheus_metrics

urlpatterns = [
    path("api/v0/", include("authentication.urls")),
    path("api/v0/", include("marketplace.urls")),
    path("api/v0/", include("notifications.urls")),
    path("api/v0/", include("chat.urls")),
    path("api/v0/", include("support.urls")),
    path("api/v0/metrics/", prometheus_metrics, name="metrics"),
]
