"""Django settings for the MoveMate backend."""

import sys
from pathlib import Path

import env_vars

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = env_vars.SECRET_KEY
DEBUG = env_vars.DEBUG
ALLOWED_HOSTS = env_vars.ALLOWED_HOSTS

TESTING = "test" in sys.argv or "pytest" in sys.modules

INSTALLED_APPS = [
    "daphne",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "channels",
    "corsheaders",
    "tickets.apps.TicketsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "main.urls"

WSGI_APPLICATION = None
ASGI_APPLICATION = "main.asgi.application"

if env_vars.DB_ENGINE == "postgres" and not TESTING:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": env_vars.DB_NAME,
            "USER": env_vars.DB_USER,
            "PASSWORD": env_vars.DB_PASSWORD,
            "HOST": env_vars.DB_HOST,
            "PORT": env_vars.DB_PORT,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Channel layers: Redis in production, in-memory for local runs and tests
if env_vars.DEBUG or TESTING:
    CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
else:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {"hosts": [env_vars.CELERY_BROKER_URL]},
        }
    }

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_TZ = True

STATIC_URL = "static/"

# 25 MB audio uploads
DATA_UPLOAD_MAX_MEMORY_SIZE = 25 * 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = 25 * 1024 * 1024

# "*" in CORS_ALLOW_ORIGINS opens the API to every origin
CORS_ALLOW_ALL_ORIGINS = "*" in env_vars.CORS_ALLOW_ORIGINS
CORS_ALLOWED_ORIGINS = [o for o in env_vars.CORS_ALLOW_ORIGINS if o != "*"]

CONVERSATION_TIMEOUT_SECONDS = env_vars.CONVERSATION_TIMEOUT_SECONDS
QUEUE_RECONCILE_INTERVAL = env_vars.QUEUE_RECONCILE_INTERVAL

CELERY_BROKER_URL = env_vars.CELERY_BROKER_URL
CELERY_RESULT_BACKEND = env_vars.CELERY_RESULT_BACKEND

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": env_vars.LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
