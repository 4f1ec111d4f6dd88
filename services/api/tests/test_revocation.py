from datetime import datetime, timedelta, timezone

from gallery_api import models, revocation
from gallery_api.auth import TokenIssuer
from gallery_api.janitor import RevocationSweeper, run_revocation_cleanup


def _exp_of(token: str) -> datetime:
    exp = TokenIssuer.decode_unverified(token)["exp"]
    return datetime.fromtimestamp(exp, tz=timezone.utc).replace(tzinfo=None)


def test_add_is_idempotent(db):
    tok = TokenIssuer("s3cret", 60).issue(1, "a_user", "admin")
    assert revocation.add(db, tok) is True
    assert revocation.add(db, tok) is False
    assert db.query(models.RevokedToken).count() == 1
    assert revocation.is_revoked(db, tok)


def test_raw_token_is_not_stored(db):
    tok = TokenIssuer("s3cret", 60).issue(1, "a_user", "admin")
    revocation.add(db, tok)
    row = db.query(models.RevokedToken).one()
    assert row.token_hash != tok
    assert tok not in row.token_hash


def test_expiry_follows_token_exp(db):
    tok = TokenIssuer("s3cret", 60).issue(1, "a_user", "admin")
    revocation.add(db, tok)
    assert db.query(models.RevokedToken).one().expires_at == _exp_of(tok)


def test_undecodable_token_gets_default_window():
    now = datetime(2026, 1, 1, 12, 0, 0)
    assert revocation.entry_expiry("not-a-token", now=now) == now + timedelta(hours=24)


def test_expiry_never_exceeds_bound():
    now = models.utcnow()
    for tok in ("junk", TokenIssuer("s", 5).issue(1, "u_u", "admin"), TokenIssuer("s", 60 * 48).issue(1, "u_u", "admin")):
        exp = TokenIssuer.decode_unverified(tok)
        bound = now + timedelta(hours=24)
        if exp:
            bound = max(bound, _exp_of(tok))
        assert revocation.entry_expiry(tok, now=now) <= bound


def test_unknown_token_is_not_revoked(db):
    assert not revocation.is_revoked(db, "never-seen")


def test_purge_expired_keeps_live_entries(db):
    now = models.utcnow()
    db.add_all([
        models.RevokedToken(token_hash="a" * 64, expires_at=now - timedelta(minutes=1), created_at=now),
        models.RevokedToken(token_hash="b" * 64, expires_at=now + timedelta(hours=1), created_at=now),
    ])
    db.commit()

    assert revocation.purge_expired(db, now=now) == 1
    assert [r.token_hash for r in db.query(models.RevokedToken).all()] == ["b" * 64]


def test_run_revocation_cleanup_reports_counts(db):
    now = models.utcnow()
    db.add(models.RevokedToken(token_hash="c" * 64, expires_at=now - timedelta(days=1), created_at=now))
    db.commit()

    res = run_revocation_cleanup(db, now=now)
    assert res["deleted_revoked_tokens"] == 1
    assert res["remaining_revoked_tokens"] == 0


def test_sweeper_run_once(app, db):
    now = models.utcnow()
    db.add(models.RevokedToken(token_hash="d" * 64, expires_at=now - timedelta(seconds=5), created_at=now))
    db.commit()

    res = RevocationSweeper(app.state.db.SessionLocal, 60).run_once()
    assert res["deleted_revoked_tokens"] == 1
    assert db.query(models.RevokedToken).count() == 0


def test_sweeper_start_stop(app):
    sweeper = RevocationSweeper(app.state.db.SessionLocal, 60)
    sweeper.start()
    sweeper.stop(timeout=2)
    assert sweeper._thread is None


def test_logged_out_token_is_purged_after_expiry(client, db, auth_headers, token):
    client.post("/api/auth/logout", headers=auth_headers)
    run_revocation_cleanup(db, now=_exp_of(token) + timedelta(seconds=1))
    assert db.query(models.RevokedToken).count() == 0
