"""
Production environment settings.

This file is loaded when CLOUD_INVENTORY_MODE=production and serves three purposes:

1. ZERO OUT SENSITIVE INFORMATION
   All sensitive settings (passwords, keys, secrets) are explicitly set to empty
   strings here, even if they already default to empty. These values MUST be
   provided via environment variables or external config.

2. SET PRODUCTION-APPROPRIATE DEFAULTS
   - DEBUG = False
   - Require a real API client and at least one crawl root

3. VALIDATE IMPORTANT SETTINGS
   Each critical setting has a corresponding Dynaconf Validator that runs at
   startup. If any required setting is missing or invalid, the application
   will fail to start with a clear error message.

Usage:
   export CLOUD_INVENTORY_MODE=production
   export CLOUD_INVENTORY_SECRET_KEY=your-secret-key
   export CLOUD_INVENTORY_DB_HOST=db.example.com
   export CLOUD_INVENTORY_DB_PASSWORD=your-db-password
   export CLOUD_INVENTORY_INVENTORY_API_CLIENT=my_package.clients.GcpApiClient
   export CLOUD_INVENTORY_INVENTORY_ROOT_RESOURCE_IDS='["organizations/1234"]'
   python manage.py migrate

Validators are registered in cloud_inventory/settings.py and run at import time.
"""

from dynaconf import Validator

validators = []

# =============================================================================
# Django Core
# =============================================================================

DEBUG = False

SECRET_KEY = ""
validators.append(
    Validator(
        "SECRET_KEY",
        must_exist=True,
        ne="",
        messages={"operations": "SECRET_KEY must be set and not empty."},
    ),
)

# =============================================================================
# Database Credentials
# =============================================================================

DB_HOST = ""
validators.append(
    Validator(
        "DB_HOST",
        must_exist=True,
        ne="",
        messages={"operations": "DB_HOST must be set; production does not run on SQLite."},
    ),
)

DB_PASSWORD = ""
validators.append(
    Validator(
        "DB_PASSWORD",
        must_exist=True,
        ne="",
        messages={"operations": "DB_PASSWORD must be set."},
    ),
)

# =============================================================================
# Crawling
# =============================================================================

validators.append(
    Validator(
        "INVENTORY_API_CLIENT",
        must_exist=True,
        ne="inventory_crawler.client.FixtureApiClient",
        messages={"operations": "INVENTORY_API_CLIENT must name a real cloud API client."},
    ),
)

validators.append(
    Validator(
        "INVENTORY_ROOT_RESOURCE_IDS",
        must_exist=True,
        condition=lambda v: bool(v),
        messages={"condition": "INVENTORY_ROOT_RESOURCE_IDS must list at least one crawl root."},
    ),
)

validators.append(
    Validator(
        "INVENTORY_CRAWL_MAX_WORKERS",
        gte=1,
        messages={"operations": "INVENTORY_CRAWL_MAX_WORKERS must be at least 1."},
    ),
)

validators.append(
    Validator(
        "INVENTORY_CRAWL_MAX_PENDING",
        gte=1,
        messages={"operations": "INVENTORY_CRAWL_MAX_PENDING must be at least 1."},
    ),
)
