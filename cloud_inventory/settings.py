"""
Django settings for the cloud inventory service.

Framework defaults live here and are read only. Everything else is layered
on top by dynaconf, in this order:

1. `apps/settings/defaults.py`
2. `apps/core/settings.py`, `apps/inventory/settings.py`
3. `apps/settings/{mode}.py` where mode comes from `CLOUD_INVENTORY_MODE`
   (`development` when unset)
4. `settings.local.py` (optional, git ignored)
5. `CLOUD_INVENTORY_` prefixed environment variables

See `apps/settings/__init__.py` for how to declare and merge settings.
"""

import os
from pathlib import Path

from dynaconf import DjangoDynaconf

BASE_DIR = Path(__file__).resolve().parent.parent

MODE = os.environ.get("CLOUD_INVENTORY_MODE", "development")

SECRET_KEY = "insecure-development-key-change-me"
DEBUG = False
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "cloud_inventory.urls"
WSGI_APPLICATION = "cloud_inventory.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": str(BASE_DIR / "db.sqlite3"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
STATIC_URL = "static/"

# ── Dynaconf ─────────────────────────────────────────────────────────
# Must stay at the bottom: dynaconf reads the values above as defaults.

settings = DjangoDynaconf(
    __name__,
    ENVVAR_PREFIX_FOR_DYNACONF="CLOUD_INVENTORY",
    ENVIRONMENTS_FOR_DYNACONF=False,
    ROOT_PATH_FOR_DYNACONF=str(BASE_DIR),
    SETTINGS_FILE_FOR_DYNACONF=[
        str(BASE_DIR / "apps" / "settings" / "defaults.py"),
        str(BASE_DIR / "apps" / "core" / "settings.py"),
        str(BASE_DIR / "apps" / "inventory" / "settings.py"),
        str(BASE_DIR / "apps" / "settings" / f"{MODE}.py"),
        str(BASE_DIR / "settings.local.py"),
    ],
)

from apps.settings.database import override_database_settings  # noqa: E402

override_database_settings(settings)
DATABASES = settings.DATABASES

if MODE == "production":
    from apps.settings.production import validators  # noqa: E402

    settings.validators.register(*validators)
    settings.validators.validate()
