import logging

from django.apps import AppConfig

logger = logging.getLogger("apps.inventory")


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.inventory"
    label = "inventory"
    verbose_name = "Cloud Inventory"

    def ready(self):
        # Discover, filter and validate the resource type registry now so a
        # broken registry fails the process at startup.
        from apps.inventory.collector import get_registry

        registry = get_registry()
        logger.debug("Resource types: %s", ", ".join(registry.dependency_order()))
