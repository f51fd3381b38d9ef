"""
Tests for the token service.

Tests issuing, verification and expiry of identity tokens.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from screenpop.core.auth import TokenService

SECRET = "unit-test-secret"


class MovableClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


class TestTokenService:
    """Test the TokenService issue/verify contract."""

    def test_verify_returns_identity(self) -> None:
        """Test a fresh token decodes to the identity it was issued for."""
        service = TokenService(secret=SECRET)
        token = service.issue(id="qa-001", email="qa@company.com", role="qa")

        identity = service.verify(token)

        assert identity is not None
        assert identity.id == "qa-001"
        assert identity.email == "qa@company.com"
        assert identity.role == "qa"
        assert identity.expires_at - identity.issued_at == timedelta(hours=24)

    def test_claims_are_self_contained(self) -> None:
        """Test the token carries id, email, role, iat and exp."""
        service = TokenService(secret=SECRET)
        token = service.issue(id="admin-001", email="admin@company.com", role="admin")

        claims = jwt.get_unverified_claims(token)
        assert set(claims) == {"id", "email", "role", "iat", "exp"}
        assert claims["exp"] - claims["iat"] == 24 * 60 * 60

    def test_expired_token_rejected(self) -> None:
        """Test a correctly signed token is rejected once expired."""
        clock = MovableClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        service = TokenService(secret=SECRET, clock=clock)
        token = service.issue(id="qa-001", email="qa@company.com", role="qa", ttl=timedelta(hours=1))

        clock.now += timedelta(minutes=59)
        assert service.verify(token) is not None

        clock.now += timedelta(minutes=2)
        assert service.verify(token) is None

    def test_token_invalid_at_exact_expiry(self) -> None:
        """Test tokens are valid strictly before their expiry."""
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        clock = MovableClock(start)
        service = TokenService(secret=SECRET, clock=clock)
        token = service.issue(id="qa-001", email="qa@company.com", role="qa", ttl=timedelta(seconds=60))

        clock.now = start + timedelta(seconds=59)
        assert service.verify(token) is not None
        clock.now = start + timedelta(seconds=60)
        assert service.verify(token) is None

    def test_wrong_secret_rejected(self) -> None:
        """Test tokens signed with another secret are rejected."""
        token = TokenService(secret="other-secret").issue(id="qa-001", email="qa@company.com", role="qa")
        assert TokenService(secret=SECRET).verify(token) is None

    def test_tampered_token_rejected(self) -> None:
        """Test a modified payload invalidates the signature."""
        service = TokenService(secret=SECRET)
        token = service.issue(id="qa-001", email="qa@company.com", role="qa")
        forged = jwt.encode(
            {**jwt.get_unverified_claims(token), "role": "admin"},
            "guessed-secret",
            algorithm="HS256",
        )
        header, _, signature = token.split(".")
        _, payload, _ = forged.split(".")

        assert service.verify(f"{header}.{payload}.{signature}") is None

    def test_garbage_never_raises(self) -> None:
        """Test malformed input is a verification failure, not an error."""
        service = TokenService(secret=SECRET)
        for token in ["", "not-a-token", "a.b.c", "Bearer xyz"]:
            assert service.verify(token) is None

    def test_missing_claims_rejected(self) -> None:
        """Test a validly signed token without identity claims is rejected."""
        service = TokenService(secret=SECRET)
        token = jwt.encode({"sub": "someone", "exp": 4102444800}, SECRET, algorithm="HS256")
        assert service.verify(token) is None
