"""
base.py

Declarative Base shared by every ORM model.

Alembic reads Base.metadata, so every model module must be imported
before metadata is used (see alembic/env.py and tests/conftest.py).

"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
