import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "siee-dev-secret-key")
DEBUG = str(os.environ.get("DJANGO_DEBUG", "0")).strip().lower() in {"1", "true", "yes", "on"}
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "siee",
]

MIDDLEWARE = []

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

LANGUAGE_CODE = "id"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "America/Bogota")
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOG_LEVEL = os.environ.get("SIEE_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "engine_context": {"()": "config.logging_filters.EngineContextFilter"},
    },
    "formatters": {
        "engine": {
            "format": "%(asctime)s %(level_color)s%(levelname)s\x1b[0m %(name)s "
            "student=%(student_id)s year=%(year_id)s area=%(area_id)s term=%(term_id)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["engine_context"],
            "formatter": "engine",
        },
    },
    "loggers": {
        "siee": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
