import logging

from django.conf import settings
from django.db import DatabaseError, connections
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class HealthView(APIView):
    """GET /api/health — Report whether the database is reachable."""

    def get(self, request, *args, **kwargs):
        try:
            with connections["default"].cursor() as cursor:
                cursor.execute("SELECT 1")
            database = True
        except DatabaseError as exc:
            logger.error("Health check failed, database unreachable: %s", exc)
            database = False

        return Response(
            {
                "status": "healthy" if database else "degraded",
                "app": settings.LEDGER_APP_NAME,
                "database": database,
            },
            status=status.HTTP_200_OK if database else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
