"""Webhook event types and payload shapes emitted by the validation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from compliance_kernel.domain.transaction import Transaction


class WebhookEventType(str, Enum):
    ORDER_APPROVED = "OrderApproved"
    ORDER_REJECTED = "OrderRejected"
    OVERRIDE_APPROVED = "OverrideApproved"


@dataclass(frozen=True)
class ViolationSummary:
    error_code: str
    message: str
    severity: str
    can_override: bool


@dataclass(frozen=True)
class OverrideApprovedPayload:
    transaction_id: UUID
    external_id: str
    customer_account: str
    customer_name: str | None
    approver: str
    justification: str
    approved_at: datetime
    violation_count: int

    @classmethod
    def from_transaction(
        cls, transaction: Transaction, approved_at: datetime,
    ) -> OverrideApprovedPayload:
        return cls(
            transaction_id=transaction.transaction_id,
            external_id=transaction.external_id,
            customer_account=transaction.customer_account,
            customer_name=transaction.customer_name,
            approver=transaction.override_decision_by or "",
            justification=transaction.override_justification or "",
            approved_at=transaction.override_decision_date or approved_at,
            violation_count=len(transaction.violations),
        )


@dataclass(frozen=True)
class OrderStatusChangedPayload:
    transaction_id: UUID
    external_id: str
    customer_account: str
    customer_name: str | None
    status: str
    validation_status: str
    override_status: str
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    licences_used: tuple[UUID, ...] = ()
    violations: tuple[ViolationSummary, ...] = field(default_factory=tuple)

    @classmethod
    def approved(
        cls, transaction: Transaction, approved_at: datetime,
    ) -> OrderStatusChangedPayload:
        return cls(
            transaction_id=transaction.transaction_id,
            external_id=transaction.external_id,
            customer_account=transaction.customer_account,
            customer_name=transaction.customer_name,
            status="Approved",
            validation_status=transaction.validation_status.value,
            override_status=transaction.override_status.value,
            approved_at=approved_at,
            licences_used=tuple(transaction.licences_used),
        )

    @classmethod
    def rejected(
        cls,
        transaction: Transaction,
        rejected_at: datetime,
        rejected_by: str,
        reason: str,
    ) -> OrderStatusChangedPayload:
        return cls(
            transaction_id=transaction.transaction_id,
            external_id=transaction.external_id,
            customer_account=transaction.customer_account,
            customer_name=transaction.customer_name,
            status="Rejected",
            validation_status=transaction.validation_status.value,
            override_status=transaction.override_status.value,
            rejected_at=rejected_at,
            rejected_by=rejected_by,
            rejection_reason=reason,
            violations=tuple(
                ViolationSummary(
                    error_code=v.error_code,
                    message=v.message,
                    severity=v.severity.value,
                    can_override=v.can_override,
                )
                for v in transaction.violations
            ),
        )
