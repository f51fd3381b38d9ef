"""
Identity and token issuing models.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .customer import CamelModel


class Identity(CamelModel):
    """Authenticated actor reconstructed from a verified token."""

    id: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        return cls(
            id=str(claims["id"]),
            email=claims.get("email", ""),
            role=claims.get("role", ""),
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    def is_valid_at(self, moment: datetime) -> bool:
        """Tokens are valid strictly before their expiry."""
        return moment < self.expires_at


class TokenIssueRequest(CamelModel):
    """Request model for token issuing."""

    id: str = Field(
        ...,
        description="Identity id (alphanumeric, hyphens, underscores only)",
        pattern=r"^[a-zA-Z0-9_-]+$",
        min_length=1,
        max_length=50,
    )
    email: str = Field(..., min_length=3, max_length=254)
    role: str = Field(..., min_length=1, max_length=32)
    ttl_hours: Optional[int] = Field(
        default=None,
        gt=0,
        le=24 * 30,
        description="Token lifetime in hours (configured default when omitted)",
    )


class TokenIssueResponse(CamelModel):
    """Response model for token issuing."""

    token: str = Field(..., description="Signed bearer token")
    identity: Identity
