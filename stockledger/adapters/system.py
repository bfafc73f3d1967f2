"""
System adapters — default clock and audit sink.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from django.utils import timezone

logger = logging.getLogger('stockledger.audit')


class SystemClock:
    """Clock backed by django.utils.timezone (respects TIME_ZONE)."""

    def now(self) -> datetime:
        return timezone.now()

    def today(self) -> date:
        return timezone.localdate()


class LoggingAuditSink:
    """Audit sink that writes one log record per audited action."""

    def record(
        self,
        actor_id: int | None,
        action: str,
        object_type: str,
        object_id: str,
        content: dict[str, Any],
    ) -> None:
        logger.info(
            "stock.audit",
            extra={
                "actor_id": actor_id,
                "action": action,
                "object_type": object_type,
                "object_id": object_id,
                "content": content,
            },
        )
