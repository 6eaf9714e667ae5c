# ideashares_backend/settings.py
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_flag(name, default="0"):
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "insecure-dev-key-change-me")
DEBUG = env_flag("DJANGO_DEBUG")
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "ideas",
    "blockchain",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "ideashares_backend.urls"
WSGI_APPLICATION = "ideashares_backend.wsgi.application"

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
        "ENGINE": os.getenv("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.getenv("DB_USER", ""),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", ""),
        "PORT": os.getenv("DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"
STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "COERCE_DECIMAL_TO_STRING": True,
}

# Ledger (EVM JSON-RPC endpoint the payments settle on)
LEDGER_RPC_URL = os.getenv("LEDGER_RPC_URL", "http://127.0.0.1:8545")
LEDGER_RPC_TIMEOUT = int(os.getenv("LEDGER_RPC_TIMEOUT", "30"))
# Display amounts are scaled by 10 ** decimals into the ledger's base unit.
LEDGER_BASE_UNIT_DECIMALS = int(os.getenv("LEDGER_BASE_UNIT_DECIMALS", "6"))
LEDGER_CONFIRMATION_ROUNDS = int(os.getenv("LEDGER_CONFIRMATION_ROUNDS", "4"))
LEDGER_CONFIRMATION_TIMEOUT = float(os.getenv("LEDGER_CONFIRMATION_TIMEOUT", "120"))
LEDGER_POLL_INTERVAL = float(os.getenv("LEDGER_POLL_INTERVAL", "1"))

# Funding commit policy
FUNDING_SERIALIZE_COMMITS = env_flag("FUNDING_SERIALIZE_COMMITS")
FUNDING_CAP_AT_REMAINING = env_flag("FUNDING_CAP_AT_REMAINING")

# seconds between watch_ideas refreshes
POLL_INTERVAL = int(os.getenv("POLL_INTERVAL", "5"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "ideas": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO")},
        "blockchain": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO")},
    },
}
