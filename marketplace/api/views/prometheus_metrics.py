import logging

from django.http import HttpResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny

from infrastructure.container import container
from notifications.infra.metrics import users_online

logger = logging.getLogger(__name__)


def _refresh_gauges():
    """Gauges backed by Redis are read at scrape time."""
    try:
        users_online.set(container.presence_service().stats()["total_online"])
        container.notification_dispatcher().queue_stats()
    except Exception as e:
        logger.warning(f"Could not refresh presence gauges: {e}")


@api_view(["GET"])
@permission_classes([AllowAny])
def prometheus_metrics(request):
    """
    Exposes Prometheus metrics for the whole service.
    """
    _refresh_gauges()
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
