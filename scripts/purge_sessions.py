"""

Periodic session maintenance.

- deactivates sessions whose expiry has passed
- hard-deletes inactive sessions older than SESSION_RETENTION_DAYS
- removes used or expired password-reset / verification tokens

Usage (cron, systemd timer ...)
- (.venv) $ python -m scripts.purge_sessions

"""

import logging

from dotenv import load_dotenv
load_dotenv()

from gnl_auth.core.config import settings
from gnl_auth.db.session import SessionLocal
from gnl_auth.services import admin as admin_service

logger = logging.getLogger("scripts.purge_sessions")


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    db = SessionLocal()
    try:
        result = admin_service.run_session_maintenance(db)
        logger.info(
            "maintenance done deactivated=%s purged=%s tokens=%s",
            result["sessions_deactivated"],
            result["sessions_purged"],
            result["tokens_purged"],
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
