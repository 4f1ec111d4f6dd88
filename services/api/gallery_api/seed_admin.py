# services/api/gallery_api/seed_admin.py

import logging
import sys

from .admin_auth import create_admin, get_admin_by_username, normalize_username
from .config import Settings, get_settings
from .db import Database
from .logging_mw import configure_logging

LOG = logging.getLogger("gallery.seed")

def seed_admin(settings: Settings) -> int:
    """
    Creates the admin from ADMIN_USERNAME / ADMIN_PASSWORD.
    Returns a process exit code: 0 created or already present, 1 misconfigured.
    """
    username = normalize_username(settings.ADMIN_USERNAME)
    if not username:
        LOG.error("ADMIN_USERNAME must not be blank")
        return 1

    db = Database(settings)
    session = db.SessionLocal()
    try:
        if get_admin_by_username(session, username) is not None:
            LOG.info(f"admin '{username}' already exists")
            return 0

        if not settings.ADMIN_PASSWORD:
            LOG.error("ADMIN_PASSWORD must be set before seeding the admin user")
            return 1
        if len(settings.ADMIN_PASSWORD) < 6:
            LOG.error("ADMIN_PASSWORD must be at least 6 characters")
            return 1

        if username == "admin":
            LOG.warning("using default username 'admin'; consider setting ADMIN_USERNAME")

        create_admin(session, username=username, password=settings.ADMIN_PASSWORD, rounds=settings.BCRYPT_ROUNDS)
        # never log the password
        LOG.info(f"admin '{username}' created")
        return 0
    finally:
        session.close()
        db.dispose()

def main():
    configure_logging()
    sys.exit(seed_admin(get_settings()))

if __name__ == "__main__":
    main()
