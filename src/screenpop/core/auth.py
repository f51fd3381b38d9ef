"""
Authentication, authorization and rate limiting.

Per-route stages are FastAPI dependencies, declared in pipeline order:
require_auth -> require_role -> require_feature_flag -> enforce_rate_limit.
Each stage audits its rejection before raising.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Sequence

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..models.auth import Identity
from .exceptions import AuthenticationError, AuthorizationError, RateLimitError

logger = structlog.get_logger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def client_address(request: Request) -> str:
    """Best-effort source address of the request."""
    return request.client.host if request.client else "unknown"


def _mask(value: str) -> str:
    return value[:8] + "..." if len(value) >= 8 else "invalid"


class TokenService:
    """
    Issues and verifies signed, self-contained identity tokens.

    There is no revocation list; expiry is the only invalidation.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(hours=24),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.default_ttl = default_ttl
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, id: str, email: str, role: str, ttl: Optional[timedelta] = None) -> str:
        """Sign a token carrying {id, email, role, iat, exp}."""
        issued_at = int(self.clock().timestamp())
        lifetime = ttl if ttl is not None else self.default_ttl
        claims = {
            "id": id,
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + int(lifetime.total_seconds()),
        }
        logger.debug("Token issued", identity_id=id, role=role, expires=claims["exp"])
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[Identity]:
        """
        Decode a token into an Identity.

        Returns None for bad signatures, malformed claims and tokens at or
        past their expiry. Never raises.
        """
        try:
            # Expiry is checked below against our own clock
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.debug("Token rejected", token=_mask(token), error=str(e))
            return None

        try:
            identity = Identity.from_claims(claims)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.debug("Token claims malformed", token=_mask(token), error=str(e))
            return None

        if not identity.is_valid_at(self.clock()):
            logger.debug("Token expired", identity_id=identity.id, expired_at=identity.expires_at.isoformat())
            return None

        return identity


@dataclass
class RateLimitWindow:
    """Request count for one key within the current window."""
    window_start: float
    count: int = 0


class RateLimiter:
    """
    Per-key fixed-window request counter.

    A window starts on the first request for a key and resets lazily once
    window_ms has elapsed.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_ms / 1000.0
        self.max_requests = max_requests
        self.clock = clock
        self.windows: Dict[str, RateLimitWindow] = {}
        self.lock = asyncio.Lock()

    async def hit(self, key: str) -> RateLimitWindow:
        """
        Count a request for key.

        Raises RateLimitError if the window is already full.
        """
        async with self.lock:
            now = self.clock()
            window = self.windows.get(key)

            if window is None or now >= window.window_start + self.window_seconds:
                window = RateLimitWindow(window_start=now)
                self.windows[key] = window

            if window.count >= self.max_requests:
                retry_after = self.get_retry_after(window, now)
                logger.warning(
                    "Rate limit exceeded",
                    key=key,
                    retry_after=retry_after,
                    count=window.count,
                    max_requests=self.max_requests,
                )
                raise RateLimitError(retry_after=retry_after)

            window.count += 1
            logger.debug(
                "Rate limit check passed",
                key=key,
                count=window.count,
                max_requests=self.max_requests,
            )
            return window

    def get_retry_after(self, window: RateLimitWindow, now: float) -> int:
        """Seconds until the window for this key rolls over."""
        return max(1, math.ceil(window.window_start + self.window_seconds - now))


async def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Require a valid bearer token.

    Attaches the verified Identity to request.state.identity.
    """
    audit = request.app.state.audit
    ip = client_address(request)

    if not request.headers.get("authorization"):
        await audit.record(
            "AUTH_FAILED",
            reason="Missing authorization header",
            ip=ip,
            path=request.url.path,
        )
        raise AuthenticationError("Authorization header required")

    token = credentials.credentials.strip() if credentials else ""
    identity = request.app.state.token_service.verify(token) if token else None

    if identity is None:
        logger.warning("Authentication failed", token=_mask(token), ip=ip)
        await audit.record(
            "AUTH_FAILED",
            reason="Invalid or expired token",
            ip=ip,
            path=request.url.path,
        )
        raise AuthenticationError("Invalid or expired token")

    request.state.identity = identity
    await audit.record("AUTH_SUCCESS", actor=identity.email, role=identity.role, ip=ip)
    return identity


def require_role(allowed_roles: Sequence[str]) -> Callable:
    """Build a dependency that admits only the given roles."""
    allowed = tuple(allowed_roles)

    async def check_role(request: Request, identity: Identity = Depends(require_auth)) -> Identity:
        if identity.role not in allowed:
            await request.app.state.audit.record(
                "AUTHORIZATION_FAILED",
                actor=identity.email,
                role=identity.role,
                required_roles=list(allowed),
                ip=client_address(request),
            )
            raise AuthorizationError("Access denied")
        return identity

    return check_role


async def require_feature_flag(request: Request) -> None:
    """Reject every caller while the feature is switched off."""
    if request.app.state.settings.enabled:
        return

    identity: Optional[Identity] = getattr(request.state, "identity", None)
    await request.app.state.audit.record(
        "FEATURE_DISABLED",
        actor=identity.email if identity else "unknown",
        ip=client_address(request),
    )
    raise AuthorizationError("Screen Pop testing is not enabled")


async def enforce_rate_limit(request: Request) -> None:
    """
    Count the request against its identity (or source address).

    The privileged role is never limited.
    """
    settings = request.app.state.settings
    identity: Optional[Identity] = getattr(request.state, "identity", None)

    if identity is not None and identity.role == settings.security.privileged_role:
        return

    key = identity.id if identity is not None else client_address(request)
    try:
        await request.app.state.rate_limiter.hit(key)
    except RateLimitError:
        await request.app.state.audit.record(
            "RATE_LIMIT_EXCEEDED",
            actor=identity.email if identity else "unknown",
            ip=client_address(request),
        )
        raise
