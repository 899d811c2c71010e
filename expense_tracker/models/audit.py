"""
Audit Models for Expense Tracker

Every user action and every store failure is recorded as an audit event.
This provides:
1. A history of what was added, changed and deleted
2. Debugging information when the hosted store misbehaves
3. Ability to reconstruct what the user saw

Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"

    # Expense lifecycle
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    VALIDATION_FAILED = "validation_failed"

    # Preferences
    CURRENCY_CHANGED = "currency_changed"

    # System events
    STORE_UNAVAILABLE = "store_unavailable"


class AuditSeverity(str, Enum):
    """How loudly an event is logged."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    One row of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Assigned when the event is built"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Creation time, timezone-aware UTC"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="What happened"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Maps to the log level"
    )

    # Context - who and what is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="Signed-in user the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'preferences')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Expense id, or the user id for preference events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="One-line summary for people reading the sheet"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific fields, JSON-serialisable"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="False for system-initiated events such as store failures"
    )

    def to_log_dict(self) -> dict:
        """Keyword arguments for a structlog call; every value JSON-safe."""
        return self.model_dump(mode="json")

    def to_sheets_row(self) -> list:
        """
        Flatten for the AuditLog worksheet.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Factory methods, one per event type.

    Usage:
        event = AuditEventBuilder.expense_created(user_id, expense_id, "Lunch", "12.50")
        event = AuditEventBuilder.store_unavailable(user_id, "create", str(exc))
    """

    @staticmethod
    def user_signed_in(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            user_id=user_id,
            description="User signed in",
            is_user_action=True,
        )

    @staticmethod
    def user_signed_out(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_OUT,
            user_id=user_id,
            description="User signed out",
            is_user_action=True,
        )

    @staticmethod
    def expense_created(
        user_id: str,
        expense_id: str,
        title: str,
        amount: str,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense added: {title[:100]} - {amount}",
            details={
                "title": title,
                "amount": amount,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        user_id: str,
        expense_id: str,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense updated ({len(changed_fields)} fields changed)",
            details={
                "changed_fields": changed_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(user_id: str, expense_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        user_id: Optional[str],
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="expense",
            description=f"Expense rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def currency_changed(
        user_id: str,
        previous: str,
        current: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_CHANGED,
            user_id=user_id,
            entity_type="preferences",
            entity_id=user_id,
            description=f"Currency changed from {previous} to {current}",
            details={
                "previous": previous,
                "current": current,
            },
            is_user_action=True,
        )

    @staticmethod
    def store_unavailable(
        user_id: Optional[str],
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Store unavailable during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )
