"""Mapping of inventory service errors onto HTTP responses."""

from rest_framework import status
from rest_framework.response import Response

from apps.inventory.exceptions import (
    Conflict,
    InventoryError,
    NotFound,
    OrphanResource,
    PurgeError,
    UnknownResourceType,
)


def error_status(exc: InventoryError) -> int:
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, Conflict):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (UnknownResourceType, OrphanResource)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


class InventoryErrorMixin:
    """Turn ``InventoryError`` raised by a view into a ``{"detail": ...}`` response."""

    def handle_exception(self, exc):
        if isinstance(exc, InventoryError):
            body = {"detail": str(exc)}
            if isinstance(exc, PurgeError):
                body.update(purged=exc.purged, attempted=exc.attempted)
            return Response(body, status=error_status(exc))
        return super().handle_exception(exc)
