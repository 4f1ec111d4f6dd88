import time

import pytest

from gallery_api import auth as auth_mod
from gallery_api.auth import TokenIssuer, extract_bearer, token_fingerprint
from gallery_api.errors import TokenExpired, TokenInvalid


@pytest.fixture
def issuer():
    return TokenIssuer("unit-test-secret", 60)


def test_issue_and_verify_claims(issuer):
    tok = issuer.issue(7, "admin_user", "admin")
    claims = issuer.verify(tok)
    assert claims["sub"] == "7"
    assert claims["username"] == "admin_user"
    assert claims["role"] == "admin"
    assert claims["exp"] - claims["iat"] == 60 * 60


def test_tokens_issued_in_same_second_differ(issuer):
    assert issuer.issue(1, "a_user", "admin") != issuer.issue(1, "a_user", "admin")


def test_tampered_payload_is_invalid(issuer):
    h, p, s = issuer.issue(1, "a_user", "admin").split(".")
    other_p = TokenIssuer("unit-test-secret", 60).issue(2, "b_user", "admin").split(".")[1]
    with pytest.raises(TokenInvalid):
        issuer.verify(f"{h}.{other_p}.{s}")


@pytest.mark.parametrize("bad", ["", "abc", "a.b", "a..c", "x.y.z"])
def test_malformed_tokens_are_invalid(issuer, bad):
    with pytest.raises(TokenInvalid):
        issuer.verify(bad)


def test_expired_token(issuer, monkeypatch):
    real_now = time.time()
    tok = issuer.issue(1, "a_user", "admin")
    monkeypatch.setattr(auth_mod.time, "time", lambda: real_now + 2 * 60 * 60)
    with pytest.raises(TokenExpired):
        issuer.verify(tok)


def test_blank_secret_rejected():
    with pytest.raises(ValueError):
        TokenIssuer("", 60)


def test_decode_unverified_ignores_signature(issuer):
    tok = issuer.issue(3, "c_user", "admin")
    claims = TokenIssuer.decode_unverified(tok[:-4] + "AAAA")
    assert claims["sub"] == "3"
    assert TokenIssuer.decode_unverified("garbage") is None


def test_extract_bearer():
    assert extract_bearer("Bearer abc") == "abc"
    assert extract_bearer("bearer abc") == "abc"
    assert extract_bearer("Basic abc") is None
    assert extract_bearer("Bearer ") is None
    assert extract_bearer(None) is None


def test_fingerprint_is_stable_sha256():
    assert token_fingerprint("t") == token_fingerprint("t")
    assert len(token_fingerprint("t")) == 64
