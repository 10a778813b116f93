import logging

from django.conf import settings
from django.db import connection
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger("apps.core.views")


class PingView(APIView):
    """Liveness probe: answers as long as the process serves requests."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response({"ping": "pong"}, status=status.HTTP_200_OK)


def check_database() -> str:
    connection.ensure_connection()
    return "ok"


def check_resource_types() -> str:
    from apps.inventory.collector import get_registry

    registry = get_registry()
    registry.validate()
    return f"ok ({len(registry.types)} types)"


CHECKS = {
    "database": check_database,
    "resource_types": check_resource_types,
}


class HealthView(APIView):
    """
    Health check endpoint to verify service health.

    Runs the checks named in ``HEALTH_CHECKS`` (database connectivity and
    resource type registry integrity) and returns overall health status.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        health_status: dict = {"status": "healthy", "checks": {}}

        for name in getattr(settings, "HEALTH_CHECKS", CHECKS):
            check = CHECKS.get(name)
            if check is None:
                health_status["checks"][name] = "error: unknown check"
                health_status["status"] = "unhealthy"
                continue
            try:
                health_status["checks"][name] = check()
            except Exception as e:
                logger.warning("Health check %s failed: %s", name, e)
                health_status["status"] = "unhealthy"
                health_status["checks"][name] = f"error: {str(e)}"

        http_status = (
            status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return Response(health_status, status=http_status)
