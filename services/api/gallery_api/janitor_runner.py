# services/api/gallery_api/janitor_runner.py

import logging
import time

from .config import get_settings
from .db import Database
from .janitor import RevocationSweeper
from .logging_mw import configure_logging

LOG = logging.getLogger("gallery.janitor")

def main():
    configure_logging()
    settings = get_settings()
    db = Database(settings)
    sweeper = RevocationSweeper(db.SessionLocal, settings.JANITOR_SLEEP_SECONDS)
    LOG.info(f"janitor_started interval={sweeper.interval_sec}s")
    try:
        while True:
            sweeper.run_once()
            time.sleep(sweeper.interval_sec)
    finally:
        db.dispose()

if __name__ == "__main__":
    main()
