"""
Pydantic data models package.

Contains all data validation models for:
- Customer records and lookup criteria
- API responses
- Identities and token issuing
"""

from .auth import Identity, TokenIssueRequest, TokenIssueResponse
from .customer import (
    CustomerRecord,
    DirectoryDump,
    ErrorResponse,
    LookupCriteria,
    LookupResponse,
    SearchResponse,
    normalize_phone,
)

__all__ = [
    # Customer models
    "CustomerRecord",
    "LookupCriteria",
    "LookupResponse",
    "DirectoryDump",
    "SearchResponse",
    "ErrorResponse",
    "normalize_phone",

    # Auth models
    "Identity",
    "TokenIssueRequest",
    "TokenIssueResponse",
]
