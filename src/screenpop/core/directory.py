"""
In-memory customer directory.

Records are loaded once from a YAML fixture and indexed by digits-only
phone, lower-cased email and exact customerId.
"""

from importlib import resources
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import structlog
import yaml

from ..models.customer import CustomerRecord, normalize_phone

logger = structlog.get_logger(__name__)


def load_customer_records(path: Optional[Path] = None) -> List[CustomerRecord]:
    """Load customer records from YAML, defaulting to the bundled fixture."""
    if path is None:
        fixture = resources.files("screenpop") / "data" / "customers.yaml"
        raw = fixture.read_text(encoding="utf-8")
    else:
        raw = Path(path).read_text(encoding="utf-8")

    data = yaml.safe_load(raw) or []
    if not isinstance(data, list):
        raise ValueError("Customer fixture must be a list of records")

    return [CustomerRecord.model_validate(item) for item in data]


class CustomerDirectory:
    """
    Read-only collection of customer records.

    Lookups use indexes built at construction; insertion order is kept
    for listing and search.
    """

    def __init__(self, records: Iterable[CustomerRecord]) -> None:
        self._records: Tuple[CustomerRecord, ...] = tuple(records)
        self._by_phone: Dict[str, CustomerRecord] = {}
        self._by_email: Dict[str, CustomerRecord] = {}
        self._by_id: Dict[str, CustomerRecord] = {}

        for record in self._records:
            if record.customer_id in self._by_id:
                raise ValueError(f"Duplicate customerId '{record.customer_id}'")
            self._by_id[record.customer_id] = record
            # First record wins on shared contact details, as a scan would
            self._by_phone.setdefault(normalize_phone(record.phone), record)
            self._by_email.setdefault(record.email.lower(), record)

        logger.info("Customer directory loaded", records=len(self._records))

    @classmethod
    def from_file(cls, path: Optional[Path] = None) -> "CustomerDirectory":
        return cls(load_customer_records(path))

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> List[CustomerRecord]:
        return list(self._records)

    def find(
        self,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> Optional[CustomerRecord]:
        """
        Find a single record by exact match.

        Only the first non-empty criterion (phone, then email, then
        customer_id) is consulted.
        """
        if phone:
            digits = normalize_phone(phone)
            return self._by_phone.get(digits) if digits else None
        if email:
            return self._by_email.get(email.lower())
        if customer_id:
            return self._by_id.get(customer_id)
        return None

    def search(
        self,
        tier: Optional[str] = None,
        line_of_business: Optional[str] = None,
    ) -> List[CustomerRecord]:
        """Filter by every provided attribute (exact match)."""
        results: List[CustomerRecord] = []
        for record in self._records:
            if tier and record.tier != tier:
                continue
            if line_of_business and record.line_of_business != line_of_business:
                continue
            results.append(record)
        return results
