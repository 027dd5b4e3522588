"""Django settings for the buildmate project."""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "buildmate-insecure-dev-key")

DEBUG = os.environ.get("DJANGO_DEBUG", "False") == "True"

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    "hardware",
    "calculator",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True

# Overrides for calculator.services.policy.BuildPolicy, e.g.
# {"safety_margin": 0.3, "psu_step_watts": 100}
BUILDMATE_POLICY = {}

# Extra spec-comparison rules, see calculator.services.field_rules.
BUILDMATE_FIELD_RULES = []

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "calculator": {
            "handlers": ["console"],
            "level": os.environ.get("BUILDMATE_LOG_LEVEL", "INFO"),
        },
        "hardware": {
            "handlers": ["console"],
            "level": os.environ.get("BUILDMATE_LOG_LEVEL", "INFO"),
        },
    },
}
