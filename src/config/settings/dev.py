"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True

if not SECRET_KEY:  # noqa: F405
    SECRET_KEY = "django-insecure-vmax-dev-only-key-change-me"

# CORS
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_CREDENTIALS = True

# Cookies over plain http in dev
JWT_AUTH_COOKIE_SECURE = False

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
