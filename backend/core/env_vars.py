"""Environment variables - Direct access to secrets."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from the backend directory (parent of core)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(os.path.join(BASE_DIR, ".env"))

# Django Settings
SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-default-key-change-in-production")
DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes", "on")
ALLOWED_HOSTS = [
    h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()
]
CORS_ALLOW_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:8081").split(",")
    if o.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database Configuration ("sqlite" or "postgres")
DB_ENGINE = os.getenv("DB_ENGINE", "sqlite").lower()
DB_NAME = os.getenv("DB_NAME", "movemate_db")
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")

# API Keys
DEEPGRAM_API_KEY = os.getenv("DEEPGRAM_API_KEY", "")
DEEPGRAM_TTS_MODEL = os.getenv("DEEPGRAM_TTS_MODEL", "aura-2-thalia-en")
DEEPGRAM_STT_MODEL = os.getenv("DEEPGRAM_STT_MODEL", "nova-3")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4-turbo")

# Celery Configuration
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

# Conversation / queue tuning
CONVERSATION_TIMEOUT_SECONDS = int(os.getenv("CONVERSATION_TIMEOUT_SECONDS", "1800"))
QUEUE_RECONCILE_INTERVAL = float(os.getenv("QUEUE_RECONCILE_INTERVAL", "5"))

__all__ = [
    "SECRET_KEY",
    "DEBUG",
    "ALLOWED_HOSTS",
    "CORS_ALLOW_ORIGINS",
    "LOG_LEVEL",
    "DB_ENGINE",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "DB_HOST",
    "DB_PORT",
    "DEEPGRAM_API_KEY",
    "DEEPGRAM_TTS_MODEL",
    "DEEPGRAM_STT_MODEL",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "CELERY_BROKER_URL",
    "CELERY_RESULT_BACKEND",
    "CONVERSATION_TIMEOUT_SECONDS",
    "QUEUE_RECONCILE_INTERVAL",
]
