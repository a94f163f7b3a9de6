from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from school_mis.auth.tokens import TokenConfig, TokenIssuer
from school_mis.common.datetime_utils import now_utc
from school_mis.core.exceptions import InvalidToken, TokenExpired


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TokenConfig(access_secret="access-secret", refresh_secret="refresh-secret"))


def test_access_token_round_trip_carries_type(issuer):
    token = issuer.issue_access("abc123")

    claims = jwt.decode(token, "access-secret", algorithms=["HS256"])
    assert claims["id"] == "abc123"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60
    assert issuer.verify_access(token) == "abc123"


def test_refresh_token_lifetime_is_thirty_days(issuer):
    claims = jwt.decode(issuer.issue_refresh("abc123"), "refresh-secret", algorithms=["HS256"])

    assert claims["type"] == "refresh"
    assert claims["exp"] - claims["iat"] == 30 * 24 * 60 * 60


def test_secrets_must_differ():
    with pytest.raises(ValueError):
        TokenIssuer(TokenConfig(access_secret="same", refresh_secret="same"))


def test_expired_access_token(issuer):
    token = issuer.issue_access("abc123", now=now_utc() - timedelta(days=8))

    with pytest.raises(TokenExpired):
        issuer.verify_access(token)


def test_refresh_token_is_not_an_access_token(issuer):
    with pytest.raises(InvalidToken):
        issuer.verify_access(issuer.issue_refresh("abc123"))


def test_access_token_is_not_a_refresh_token(issuer):
    with pytest.raises(InvalidToken):
        issuer.verify_refresh(issuer.issue_access("abc123"))


def test_wrong_type_claim_under_right_secret_is_rejected(issuer):
    forged = jwt.encode(
        {"id": "abc123", "type": "refresh", "exp": now_utc() + timedelta(hours=1)},
        "access-secret",
        algorithm="HS256",
    )

    with pytest.raises(InvalidToken):
        issuer.verify_access(forged)


def test_garbage_token(issuer):
    with pytest.raises(InvalidToken):
        issuer.verify_access("not-a-jwt")


def test_config_defaults_to_seven_and_thirty_day_lifetimes():
    config = TokenConfig(access_secret="a", refresh_secret="b")

    assert config.access_ttl == timedelta(days=7)
    assert config.refresh_ttl == timedelta(days=30)
