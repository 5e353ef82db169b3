"""
services/hooks.py

Integration points owned by other subsystems.

Profile-completion tracking and trust-level rewards live outside the
kernel; the credential service only announces the events. Handlers are
plain callables registered at startup.

"""

import logging
from typing import Callable

from gnl_auth.models.user import User

logger = logging.getLogger(__name__)

EmailVerifiedHandler = Callable[[User], None]

_email_verified_handlers: list[EmailVerifiedHandler] = []


def on_email_verified(handler: EmailVerifiedHandler) -> EmailVerifiedHandler:
    _email_verified_handlers.append(handler)
    return handler


def clear_handlers() -> None:
    _email_verified_handlers.clear()


def emit_email_verified(user: User) -> None:
    for handler in list(_email_verified_handlers):
        try:
            handler(user)
        except Exception:
            # hook failures must not undo a committed verification
            logger.exception("email_verified hook failed user_id=%s", user.id)
