"""
Customer data models and lookup validation.

- CustomerRecord: immutable CRM fixture record, camelCase on the wire
- LookupCriteria: validated phone / email / customerId query
- Phone ≤ 20 raw characters, digits only after normalization
- Email must look like local@domain.tld, lower-cased
- customerId ≤ 50 characters, matched exactly
"""

import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.exceptions import ValidationError

PHONE_MAX_LENGTH = 20
CUSTOMER_ID_MAX_LENGTH = 50
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_DIGITS = re.compile(r"\D", re.ASCII)


def normalize_phone(phone: Optional[str]) -> str:
    """Strip every non-digit character."""
    if not phone:
        return ""
    return NON_DIGITS.sub("", phone)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CustomerRecord(CamelModel):
    """
    A canned CRM customer.

    Loaded once at startup and never mutated.
    """

    customer_id: str = Field(min_length=1, description="Unique customer identifier")
    phone: str
    email: str
    first_name: str
    last_name: str
    account_number: str
    account_id: str

    # Interaction history
    last_interaction_date: datetime
    total_interactions: int = 0
    last_interaction_type: str

    # Business context
    claim_id: Optional[str] = None
    claim_status: str
    claim_amount: float = 0
    order_id: Optional[str] = None
    order_status: str
    case_id: Optional[str] = None
    case_status: str
    contract_id: Optional[str] = None
    product_id: str
    line_of_business: str

    # Segment
    tier: str
    lifetime_value: float = 0
    sentiment: str

    # Location & preferences
    timezone: str
    locale: str
    preferred_contact_method: str

    # Metadata
    created_date: date
    last_updated: datetime

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LookupCriteria(BaseModel):
    """Normalized lookup query. At least one field is set."""

    phone: Optional[str] = None
    email: Optional[str] = None
    customer_id: Optional[str] = None
    raw_query: Dict[str, Optional[str]] = Field(default_factory=dict, exclude=True)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_query(
        cls,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> "LookupCriteria":
        """
        Validate raw query parameters.

        Empty strings count as absent. Raises ValidationError with a
        descriptive message on the first failing check.
        """
        if not phone and not email and not customer_id:
            raise ValidationError("Must provide one of: phone, email, or customerId")

        normalized_phone = None
        if phone:
            normalized_phone = normalize_phone(phone)
            if len(phone) > PHONE_MAX_LENGTH or not normalized_phone:
                raise ValidationError("Invalid phone number")

        normalized_email = None
        if email:
            if not EMAIL_PATTERN.fullmatch(email):
                raise ValidationError("Invalid email address")
            normalized_email = email.lower()

        if customer_id and len(customer_id) > CUSTOMER_ID_MAX_LENGTH:
            raise ValidationError("Invalid customer ID")

        return cls(
            phone=normalized_phone,
            email=normalized_email,
            customer_id=customer_id or None,
            raw_query={"phone": phone, "email": email, "customerId": customer_id},
        )

    @property
    def matched_by(self) -> str:
        """Name of the criterion that takes precedence."""
        if self.phone:
            return "phone"
        if self.email:
            return "email"
        return "customerId"

    def as_query(self) -> Dict[str, Optional[str]]:
        """Query parameters exactly as the caller sent them."""
        if self.raw_query:
            return dict(self.raw_query)
        return {"phone": self.phone, "email": self.email, "customerId": self.customer_id}


class LookupResponse(CamelModel):
    """200 response for a matched lookup."""

    success: bool = True
    customer: CustomerRecord
    matched_by: str = Field(description="phone, email or customerId")
    timestamp: datetime


class DirectoryDump(CamelModel):
    """Full directory listing."""

    customers: List[CustomerRecord]
    count: int
    timestamp: datetime


class SearchResponse(CamelModel):
    """Attribute search results."""

    results: List[CustomerRecord]
    count: int
    query: Dict[str, Any]


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Error code")
