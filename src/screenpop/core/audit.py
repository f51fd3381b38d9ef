"""
Audit trail for security-relevant events.

Every entry goes to the structured console log and is appended as one
JSON line to a durable file. File failures never fail the request.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from aiofiles import open as aio_open

from .metrics import MetricsCollector

logger = structlog.get_logger("screenpop.audit")


class AuditLogger:
    """
    Append-only audit sink.

    Features:
    - ISO-8601 UTC timestamp on every entry
    - Console sink via structlog
    - JSON-lines file sink, parent directory created on demand
    """

    def __init__(self, log_file: Optional[Path], metrics: Optional[MetricsCollector] = None) -> None:
        self.log_file = Path(log_file) if log_file else None
        self.metrics = metrics

    async def record(self, action: str, **fields: Any) -> Dict[str, Any]:
        """
        Timestamp and write an audit entry.

        Returns the entry as written.
        """
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "action": action,
        }
        entry.update({key: value for key, value in fields.items() if value is not None})

        # structlog stamps its own timestamp
        logger.info("screenpop_audit", **{k: v for k, v in entry.items() if k != "timestamp"})

        if self.metrics:
            self.metrics.record_audit(action)

        if self.log_file is not None:
            await self._append(entry)

        return entry

    async def _append(self, entry: Dict[str, Any]) -> None:
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            async with aio_open(self.log_file, "a", encoding="utf-8") as f:
                await f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.error(
                "Failed to write audit log",
                audit_file=str(self.log_file),
                error=str(e),
                error_type=type(e).__name__,
            )
