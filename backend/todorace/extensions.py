"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy, marshmallow and the notification hub as module-level
objects so they can be imported anywhere without circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in todorace/__init__.py.
    3. Import `db`, `ma` or `notifier` from here wherever needed.

    from backend.todorace.extensions import db, ma, notifier

Do not pass the app object directly to SQLAlchemy() or Marshmallow() at
import time — that would prevent running tests with a separate test app
instance.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

from backend.todorace.services.notification_service import NotificationHub

db = SQLAlchemy()

# Marshmallow instance — available for model serialization helpers.
#
# IMPORTANT — schema inheritance rule:
#   All validation Schema classes (in todorace/schemas/) must inherit from
#   marshmallow.Schema directly, NOT from ma.Schema.
#
#   ma.Schema requires an active Flask application context; unit tests in
#   tests/unit/ run without one.
ma = Marshmallow()

# In-process notification channel registry. Services receive it as an
# explicit argument; only routes import it from here.
notifier = NotificationHub()
