"""
Audit Logger

Every user action and every store failure is logged. This provides:
1. Complete traceability of what changed in the expense list
2. Debugging capability when the hosted store misbehaves

The audit logger:
- Is async to match the storage interface
- Never lets a failed audit write break the action being audited
"""

import logging
import sys
from typing import Optional

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """Configure stdlib logging and structlog to emit JSON lines."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


_LEVEL_BY_SEVERITY = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """Writes audit events to the structured log and, optionally, to storage."""

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted. None keeps them in the
                    log output only.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        The log line is always written, at the level matching the event's
        severity.

        Returns:
            False only when persisting to storage failed
        """
        emit = getattr(self._logger, _LEVEL_BY_SEVERITY[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                event_id=str(event.event_id),
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    async def log_signed_in(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.user_signed_in(user_id))

    async def log_signed_out(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.user_signed_out(user_id))

    async def log_expense_created(
        self,
        user_id: str,
        expense_id: str,
        title: str,
        amount: str,
        category: str,
    ) -> None:
        """Log expense creation."""
        event = AuditEventBuilder.expense_created(
            user_id=user_id,
            expense_id=expense_id,
            title=title,
            amount=amount,
            category=category,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        user_id: str,
        expense_id: str,
        changed_fields: list[str],
    ) -> None:
        """Log an edit, listing which of the editable fields changed."""
        event = AuditEventBuilder.expense_updated(
            user_id=user_id,
            expense_id=expense_id,
            changed_fields=changed_fields,
        )
        await self.log(event)

    async def log_expense_deleted(self, user_id: str, expense_id: str) -> None:
        await self.log(AuditEventBuilder.expense_deleted(user_id, expense_id))

    async def log_validation_failed(
        self,
        user_id: Optional[str],
        issues: list[dict],
    ) -> None:
        """Log a rejected expense form."""
        await self.log(AuditEventBuilder.validation_failed(user_id, issues))

    async def log_currency_changed(
        self,
        user_id: str,
        previous: str,
        current: str,
    ) -> None:
        await self.log(AuditEventBuilder.currency_changed(user_id, previous, current))

    async def log_store_unavailable(
        self,
        user_id: Optional[str],
        operation: str,
        error_message: str,
    ) -> None:
        """Log a failed store read or write."""
        event = AuditEventBuilder.store_unavailable(
            user_id=user_id,
            operation=operation,
            error_message=error_message,
        )
        await self.log(event)
