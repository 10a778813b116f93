from django.urls import include, path

from apps.inventory.v1.router import router

urlpatterns = [
    path("", include(router.urls)),
]
