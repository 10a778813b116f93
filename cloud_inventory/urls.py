"""
URL configuration for the cloud inventory service.

Loading order:

1. `apps/core/urls.py` - liveness and health endpoints
2. `apps/inventory/urls.py` - the inventory REST API under `api/v1/`
"""

from django.urls import include, path

urlpatterns = [
    path("", include("apps.core.urls")),
    path("api/v1/", include("apps.inventory.urls")),
    path("api-auth/", include("rest_framework.urls")),
]
