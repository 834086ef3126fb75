# backend/settings/__init__.py
"""
Settings are split per environment; pick one with DJANGO_SETTINGS_MODULE:

- backend.settings.dev   local development (default for manage.py / wsgi / asgi)
- backend.settings.prod  deployed instances, fail-closed on missing env
- backend.settings.test  pytest
"""
