# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS (pytest / manage.py test)
- in-memory SQLite
- fast password hashing
- no throttling
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

ACCOUNTING_POST_DEFERRED_ON_ISSUE = True
INVOICE_DUE_SOON_DAYS = 7
