"""Database configuration hook for the cloud inventory service.

`override_database_settings` maps simple DB_* settings (loaded by Dynaconf
from CLOUD_INVENTORY_DB_* env vars) into Django's DATABASES dict.

Loading order (in cloud_inventory/settings.py):
  1. Framework defaults define DATABASES with a sqlite3 database
  2. Dynaconf loads CLOUD_INVENTORY_DB_* env vars as DB_HOST, DB_PORT, etc.
  3. When DB_HOST is set, this function replaces DATABASES["default"]
     with a PostgreSQL configuration built from those DB_* settings.
     Without DB_HOST the sqlite3 database is kept.

Environment variables (set via compose.yaml or shell):
  CLOUD_INVENTORY_DB_HOST         (no default; enables PostgreSQL)
  CLOUD_INVENTORY_DB_PORT         (default: 5432)
  CLOUD_INVENTORY_DB_NAME         (default: inventory_db)
  CLOUD_INVENTORY_DB_USER         (default: inventory)
  CLOUD_INVENTORY_DB_PASSWORD     (required in production)
  CLOUD_INVENTORY_DB_SSLMODE      (default: allow)
  CLOUD_INVENTORY_DB_SSLCERT      (default: "")
  CLOUD_INVENTORY_DB_SSLKEY       (default: "")
  CLOUD_INVENTORY_DB_SSLROOTCERT  (default: "")
"""

from dynaconf import Dynaconf


def postgres_config(loaded_settings: Dynaconf) -> dict:
    """Build a PostgreSQL DATABASES entry from DB_* settings."""
    return {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": loaded_settings.get("DB_HOST"),
        "PORT": loaded_settings.get("DB_PORT", default=5432),
        "USER": loaded_settings.get("DB_USER", default="inventory"),
        "PASSWORD": loaded_settings.get("DB_PASSWORD", default=""),
        "NAME": loaded_settings.get("DB_NAME", default="inventory_db"),
        "OPTIONS": {
            "sslmode": loaded_settings.get("DB_SSLMODE", default="allow"),
            "sslcert": loaded_settings.get("DB_SSLCERT", default=""),
            "sslkey": loaded_settings.get("DB_SSLKEY", default=""),
            "sslrootcert": loaded_settings.get("DB_SSLROOTCERT", default=""),
            "application_name": loaded_settings.get("DB_APP_NAME", default="cloud_inventory"),
        },
    }


def override_database_settings(loaded_settings: Dynaconf) -> None:
    """Switch the default database to PostgreSQL when DB_HOST is configured."""
    if not loaded_settings.get("DB_HOST"):
        return

    databases = dict(loaded_settings.get("DATABASES", {}))
    databases["default"] = postgres_config(loaded_settings)
    loaded_settings.update(
        {"DATABASES": databases},
        loader_identifier="settings:override_database_settings",
    )
