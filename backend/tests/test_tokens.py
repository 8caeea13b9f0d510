"""
Unit tests for TokenService: issuing, verification failure kinds and inspection helpers.
"""

from datetime import timedelta

import pytest
from jose import jwt

from fitpath.core.exceptions import InvalidTokenError, TokenExpiredError, WrongTokenTypeError
from fitpath.core.tokens import ACCESS, REFRESH, TokenConfig, TokenService


class TestIssueAndVerify:

    def test_access_token_verifies_to_same_user(self, token_service):
        token = token_service.issue_access_token("user-1")
        claims = token_service.verify(token)
        assert claims["sub"] == "user-1"
        assert claims["type"] == ACCESS
        assert claims["iss"] == "fitness-app"
        assert claims["aud"] == "fitness-app-users"
        assert claims["jti"]

    def test_refresh_token_verifies_as_refresh(self, token_service):
        token = token_service.issue_refresh_token("user-1")
        assert token_service.verify(token, expected_type=REFRESH)["sub"] == "user-1"

    def test_tokens_are_unique(self, token_service):
        assert token_service.issue_access_token("u") != token_service.issue_access_token("u")

    def test_token_pair(self, token_service):
        pair = token_service.issue_token_pair("user-1")
        assert pair.expires_in == 15 * 60
        assert pair.refresh_expires_in == 7 * 24 * 3600
        assert token_service.verify(pair.access_token)["sub"] == "user-1"
        assert token_service.verify(pair.refresh_token, REFRESH)["sub"] == "user-1"
        assert pair.to_dict()["expiresIn"] == 900

    def test_different_secret_is_invalid(self, token_service):
        other = TokenService(TokenConfig(secret="another-secret"))
        token = other.issue_access_token("user-1")
        with pytest.raises(InvalidTokenError):
            token_service.verify(token)

    def test_wrong_type_is_rejected(self, token_service):
        refresh = token_service.issue_refresh_token("user-1")
        with pytest.raises(WrongTokenTypeError):
            token_service.verify(refresh, expected_type=ACCESS)

        access = token_service.issue_access_token("user-1")
        with pytest.raises(WrongTokenTypeError):
            token_service.verify(access, expected_type=REFRESH)

    def test_expired_token(self, token_service):
        token = token_service.issue_access_token("user-1", expires_delta=timedelta(seconds=-10))
        with pytest.raises(TokenExpiredError):
            token_service.verify(token)

    def test_wrong_audience(self, token_service):
        other = TokenService(TokenConfig(secret="unit-test-secret", audience="someone-else"))
        with pytest.raises(InvalidTokenError):
            token_service.verify(other.issue_access_token("user-1"))

    def test_wrong_issuer(self, token_service):
        other = TokenService(TokenConfig(secret="unit-test-secret", issuer="elsewhere"))
        with pytest.raises(InvalidTokenError):
            token_service.verify(other.issue_access_token("user-1"))

    def test_other_algorithm_is_rejected(self, token_service):
        claims = jwt.get_unverified_claims(token_service.issue_access_token("user-1"))
        forged = jwt.encode(claims, "unit-test-secret", algorithm="HS512")
        with pytest.raises(InvalidTokenError):
            token_service.verify(forged)

    def test_malformed_token(self, token_service):
        for token in ("", "garbage", "a.b", "a..c"):
            with pytest.raises(InvalidTokenError):
                token_service.verify(token)

    def test_empty_secret_not_allowed(self):
        with pytest.raises(ValueError):
            TokenService(TokenConfig(secret=""))


class TestInspection:

    def test_decode_without_verification(self, token_service):
        token = token_service.issue_access_token("user-1")
        assert TokenService.decode(token)["sub"] == "user-1"
        assert TokenService.decode("garbage") is None

    def test_is_expired(self, token_service):
        assert TokenService.is_expired(token_service.issue_access_token("u")) is False
        expired = token_service.issue_access_token("u", expires_delta=timedelta(seconds=-10))
        assert TokenService.is_expired(expired) is True
        assert TokenService.is_expired("garbage") is True

    def test_expiry_of(self, token_service):
        token = token_service.issue_access_token("u")
        assert TokenService.expiry_of(token) is not None
        assert TokenService.expiry_of("garbage") is None

    def test_extract_from_header(self):
        assert TokenService.extract_from_header("Bearer abc.def.ghi") == "abc.def.ghi"
        assert TokenService.extract_from_header("abc.def.ghi") == "abc.def.ghi"
        assert TokenService.extract_from_header("") is None
        assert TokenService.extract_from_header(None) is None

    def test_is_well_formed(self):
        assert TokenService.is_well_formed("a.b.c") is True
        assert TokenService.is_well_formed("a.b") is False
        assert TokenService.is_well_formed("a..c") is False
        assert TokenService.is_well_formed(None) is False
