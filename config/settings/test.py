# config/settings/test.py
import tempfile

from .base import *  # noqa

DEBUG = False
SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
MEDIA_ROOT = Path(tempfile.mkdtemp(prefix="dt-test-media-"))

DRUG_TEST_NOTIFICATIONS = {
    **DRUG_TEST_NOTIFICATIONS,
    "FROM_ADDRESS": "results@example.com",
    "TEST_MODE": False,
    "TEST_ADDRESS": "qa@example.com",
    "SEND_DELAY_SECONDS": 0,
}

LOGGING["loggers"]["dt_core"].update({"level": "DEBUG", "propagate": True})
