"""
Testing environment overrides
Inherits from ./defaults.py and adds test-specific settings

Selected with CLOUD_INVENTORY_MODE=test. The test suite itself runs
against the development defaults (SQLite) unless DB_HOST is set.
"""

DEBUG = False
TESTING = True
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]
SECRET_KEY = "test-only-secret-key-for-testing-purposes-only"

# Let Django create unique test database names automatically
DATABASES__default__TEST__NAME = None

# Disable caching during tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.dummy.DummyCache",
    }
}

# Use faster password hashing for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

INVENTORY_API_CLIENT_OPTIONS = {}
INVENTORY_ROOT_RESOURCE_IDS = []

# Disable logging during tests
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "root": {
        "handlers": ["null"],
    },
}

# REST Framework settings for tests
REST_FRAMEWORK__DEFAULT_PERMISSION_CLASSES = [
    "rest_framework.permissions.AllowAny",
]
