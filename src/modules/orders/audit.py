"""Audit trail of accepted order transitions.

Audit records are write-only from the lifecycle's point of view: they
are emitted on the ``audit`` logger as structured ``order.audit``
events and collected by the log pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

audit_logger = structlog.get_logger("audit")


@dataclass(frozen=True)
class OrderAuditRecord:
    order_id: str
    actor_id: Optional[str]
    previous_status: str
    new_status: str
    action: str = "order.status_transition"
    reason: str = ""
    note: str = ""
    notification_sent: bool = False
    processing_time_ms: float = 0.0
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_log_fields(self) -> Dict[str, Any]:
        data = asdict(self)
        # "timestamp" is reserved by the structlog TimeStamper processor.
        data["occurred_at"] = data.pop("timestamp").isoformat()
        return data


class IAuditSink(ABC):
    @abstractmethod
    def append(self, record: OrderAuditRecord) -> None:
        """Append *record* to the audit trail."""


class StructlogAuditSink(IAuditSink):
    def append(self, record: OrderAuditRecord) -> None:
        fields = record.as_log_fields()
        action = fields.pop("action")
        audit_logger.info("order.audit", audit_action=action, **fields)
