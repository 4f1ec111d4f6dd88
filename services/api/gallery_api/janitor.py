# services/api/gallery_api/janitor.py

import logging
import threading
from datetime import datetime

from sqlalchemy.orm import Session as OrmSession, sessionmaker

from . import models, revocation

LOG = logging.getLogger("gallery.janitor")

def run_revocation_cleanup(db: OrmSession, now: datetime | None = None) -> dict:
    """
    Deletes revoked-token entries whose expires_at has passed. Those tokens
    would fail verification on expiry alone, so the ledger no longer needs them.
    """
    now = now or models.utcnow()
    deleted = revocation.purge_expired(db, now=now)
    remaining = db.query(models.RevokedToken).count()
    return {
        "deleted_revoked_tokens": deleted,
        "remaining_revoked_tokens": int(remaining),
        "cutoff": now.isoformat(),
    }


class RevocationSweeper:
    """Background thread running run_revocation_cleanup every interval_sec."""

    def __init__(self, session_factory: sessionmaker, interval_sec: int):
        self.session_factory = session_factory
        self.interval_sec = max(1, int(interval_sec))
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> dict | None:
        db: OrmSession = self.session_factory()
        try:
            res = run_revocation_cleanup(db)
            LOG.info(f"revocation_sweep_ok {res}")
            return res
        except Exception as e:
            LOG.exception(f"revocation_sweep_failed: {e}")
            return None
        finally:
            db.close()

    def _loop(self):
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval_sec)

    def start(self):
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="revocation-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
