"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True

# Email
EMAIL_BACKEND = env(
    "EMAIL_BACKEND",
    default="django.core.mail.backends.console.EmailBackend",
)  # noqa: F405

# Run tenant refreshes on a small thread pool locally
INTELLIGENCE_MAX_WORKERS = env.int("INTELLIGENCE_MAX_WORKERS", default=4)  # noqa: F405

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
