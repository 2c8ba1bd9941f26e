from __future__ import annotations

import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env if present (dev convenience)
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-secret")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") not in {"0", "false", "False"}

ALLOWED_HOSTS = ["*"]
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "cronsched",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "cronsched_project.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "cronsched_project.wsgi.application"


database_url = os.environ.get("DATABASE_URL")
if database_url:
    DATABASES = {"default": dj_database_url.parse(database_url, conn_max_age=60)}
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("CRONSCHED_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# --- Schedule generation ---
# Minutes ahead for which pending schedules are pre-generated.
CRONSCHED_SCHEDULE_AHEAD_FOR = int(os.environ.get("CRONSCHED_SCHEDULE_AHEAD_FOR", "20"))
# Minimum minutes between two generation passes.
CRONSCHED_SCHEDULE_GENERATE_EVERY = int(os.environ.get("CRONSCHED_SCHEDULE_GENERATE_EVERY", "15"))

# --- History retention ---
CRONSCHED_HISTORY_CLEANUP_EVERY = int(os.environ.get("CRONSCHED_HISTORY_CLEANUP_EVERY", "10"))
# Lifetime (minutes) for success-like statuses (success, repeat, killed, didnt_do_anything).
CRONSCHED_HISTORY_SUCCESS_LIFETIME = int(os.environ.get("CRONSCHED_HISTORY_SUCCESS_LIFETIME", "60"))
# Lifetime (minutes) for failure-like statuses (error, died, missed, disappeared, skip_*).
CRONSCHED_HISTORY_FAILURE_LIFETIME = int(os.environ.get("CRONSCHED_HISTORY_FAILURE_LIFETIME", "600"))
# Optional JSON object of per-status lifetimes, e.g. {"error": 1440}.
CRONSCHED_HISTORY_LIFETIMES = os.environ.get("CRONSCHED_HISTORY_LIFETIMES", "")
# Keep at most N success/repeat schedules per job code (0 = unlimited).
CRONSCHED_MAX_SUCCESSFUL_TASKS = int(os.environ.get("CRONSCHED_MAX_SUCCESSFUL_TASKS", "0"))

# --- Shared state / process registry backends ("db" or "redis") ---
CRONSCHED_STATE_BACKEND = os.environ.get("CRONSCHED_STATE_BACKEND", "db")
CRONSCHED_PROCESS_REGISTRY = os.environ.get("CRONSCHED_PROCESS_REGISTRY", "db")
CRONSCHED_REDIS_URL = os.environ.get("CRONSCHED_REDIS_URL", "redis://localhost:6379/0")

# --- HTTP API ---
# If set (non-empty), /api/ requires X-Cronsched-Token. If empty, an authenticated session.
CRONSCHED_API_TOKEN = os.environ.get("CRONSCHED_API_TOKEN", "")
CRONSCHED_METRICS_TOKEN = os.environ.get("CRONSCHED_METRICS_TOKEN", "")

# --- Logging ---
# Optional log file for generation/cleanup messages.
CRONSCHED_LOG_FILE = os.environ.get("CRONSCHED_LOG_FILE", "")
CRONSCHED_LOG_LEVEL = os.environ.get("CRONSCHED_LOG_LEVEL", "INFO")

_cronsched_handlers = ["console"]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "cronsched": {"handlers": _cronsched_handlers, "level": CRONSCHED_LOG_LEVEL, "propagate": False},
    },
}

if CRONSCHED_LOG_FILE:
    LOGGING["handlers"]["file"] = {
        "class": "logging.FileHandler",
        "filename": CRONSCHED_LOG_FILE,
        "formatter": "plain",
    }
    _cronsched_handlers.append("file")
