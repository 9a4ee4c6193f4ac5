import base64
import json
import time

import pytest
from jose import jwt

from app.auth import (
    JoseTokenVerifier,
    UnverifiedTokenDecoder,
    build_token_verifier,
    extract_subject,
    parse_bearer,
)
from app.config import AuthMode, Settings
from app.services.errors import (
    InvalidCredentialError,
    MalformedCredentialError,
    MissingCredentialError,
    UnauthorizedError,
)
from tests.conftest import TEST_SECRET, make_token


def _b64url(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


def _unsigned(payload: dict) -> str:
    return f"{_b64url({'alg': 'none', 'typ': 'JWT'})}.{_b64url(payload)}.sig"


@pytest.fixture
def verifier():
    return JoseTokenVerifier(TEST_SECRET, ["HS256"])


class TestParseBearer:
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "bearer abc", "Bearer a b", "Bearer "])
    def test_rejects_missing_or_wrong_scheme(self, header):
        with pytest.raises(MissingCredentialError):
            parse_bearer(header)

    def test_returns_token(self):
        assert parse_bearer("Bearer abc.def.ghi") == "abc.def.ghi"


class TestExtractSubject:
    def test_valid_signed_token(self, verifier):
        assert extract_subject(f"Bearer {make_token('u1')}", verifier) == "u1"

    @pytest.mark.parametrize("token", ["abc", "a.b", "a.b.c.d", "a.b.c.d.e"])
    def test_wrong_segment_count_is_malformed(self, verifier, token):
        with pytest.raises(MalformedCredentialError):
            extract_subject(f"Bearer {token}", verifier)

    def test_forged_signature_rejected(self, verifier):
        token = make_token("u1", secret="someone-else")
        with pytest.raises(InvalidCredentialError):
            extract_subject(f"Bearer {token}", verifier)

    def test_unsigned_token_rejected(self, verifier):
        with pytest.raises(InvalidCredentialError):
            extract_subject(f"Bearer {_unsigned({'sub': 'u1'})}", verifier)

    def test_expired_token_rejected(self, verifier):
        token = jwt.encode({"sub": "u1", "exp": int(time.time()) - 60}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(InvalidCredentialError):
            extract_subject(f"Bearer {token}", verifier)

    def test_token_without_expiry_rejected(self, verifier):
        token = jwt.encode({"sub": "u1"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(InvalidCredentialError):
            extract_subject(f"Bearer {token}", verifier)

    def test_missing_sub_is_malformed(self, verifier):
        token = jwt.encode({"email": "a@b.c", "exp": int(time.time()) + 60}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(MalformedCredentialError):
            extract_subject(f"Bearer {token}", verifier)

    def test_non_string_sub_is_malformed(self):
        decoder = UnverifiedTokenDecoder()
        with pytest.raises(MalformedCredentialError):
            extract_subject(f"Bearer {_unsigned({'sub': 42})}", decoder)

    def test_all_failures_are_unauthorized(self, verifier):
        for header in [None, "Bearer x", f"Bearer {make_token(secret='nope')}"]:
            with pytest.raises(UnauthorizedError):
                extract_subject(header, verifier)


class TestAudienceAndIssuer:
    def test_audience_checked_when_configured(self):
        v = JoseTokenVerifier(TEST_SECRET, ["HS256"], audience="authenticated")
        assert v.verify(make_token("u1", aud="authenticated")) == "u1"
        with pytest.raises(InvalidCredentialError):
            v.verify(make_token("u1", aud="other"))

    def test_audience_ignored_when_not_configured(self):
        v = JoseTokenVerifier(TEST_SECRET, ["HS256"])
        assert v.verify(make_token("u1", aud="authenticated")) == "u1"

    def test_issuer_checked_when_configured(self):
        v = JoseTokenVerifier(TEST_SECRET, ["HS256"], issuer="https://issuer.example")
        assert v.verify(make_token("u1", iss="https://issuer.example")) == "u1"
        with pytest.raises(InvalidCredentialError):
            v.verify(make_token("u1", iss="https://evil.example"))


class TestUnverifiedDecoder:
    def test_reads_sub_without_signature(self):
        assert extract_subject(f"Bearer {_unsigned({'sub': 'u9'})}", UnverifiedTokenDecoder()) == "u9"

    def test_garbage_payload_is_malformed(self):
        with pytest.raises(MalformedCredentialError):
            extract_subject("Bearer aaa.!!!notbase64.ccc", UnverifiedTokenDecoder())

    @pytest.mark.parametrize("token", ["nodots", "a.b", "a.b.c.d"])
    def test_verify_checks_segment_count(self, token):
        with pytest.raises(MalformedCredentialError):
            UnverifiedTokenDecoder().verify(token)

    def test_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="app.auth"):
            UnverifiedTokenDecoder()
        assert "NOT verified" in caplog.text


class TestBuildTokenVerifier:
    def test_default_is_verified(self):
        assert isinstance(build_token_verifier(Settings(secret_key="k")), JoseTokenVerifier)

    def test_verified_mode_requires_secret(self):
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            build_token_verifier(Settings(secret_key=""))

    def test_default_secret_is_empty(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError):
            build_token_verifier(Settings(_env_file=None))

    def test_unverified_only_when_asked(self):
        settings = Settings(auth_mode=AuthMode.UNVERIFIED_DEV)
        assert isinstance(build_token_verifier(settings), UnverifiedTokenDecoder)
