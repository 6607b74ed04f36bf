"""
tests/unit/conftest.py

Imports every model module so SQLAlchemy can configure mappers (string
relationship targets such as "Task") when a unit test builds a model
instance without a database.
"""

from backend.todorace.models import (  # noqa: F401
    group,
    join_request,
    membership,
    refresh_token,
    task,
    user,
)
