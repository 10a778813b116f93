"""
Development environment overrides
Inherits from ./defaults.py and adds dev-specific defaults
"""

DEBUG = True

CSRF_TRUSTED_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]
"""CSRF settings to allow origins to make requests, NOTE: Only use in development!"""

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.dummy.DummyCache",
    }
}
"""Cache settings - use dummy cache for development to avoid caching issues"""

INVENTORY_API_CLIENT_OPTIONS__path = "@format {this.BASE_DIR}/fixtures/example_org.yml"
"""Crawl the bundled fixture hierarchy unless a real API client is configured."""
INVENTORY_ROOT_RESOURCE_IDS = ["organizations/1234"]

LOGGING__loggers__apps__level = "DEBUG"
LOGGING__loggers__inventory_crawler__level = "DEBUG"
LOGGING__loggers = {
    "dynaconf_merge": True,
    "django.template": {
        "handlers": [],
        "level": "CRITICAL",
        "propagate": False,
    },
}
