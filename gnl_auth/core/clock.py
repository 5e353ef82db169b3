"""
clock.py

Single source of "now" for the kernel.

All persisted timestamps are naive UTC datetimes. Tests replace
``utcnow`` with monkeypatch to move time forward.

"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
