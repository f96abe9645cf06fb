"""
compliance_kernel.services.override_service -- Human override decisions.

Responsibility:
    Records approval or rejection of a transaction that failed validation
    with only overridable violations.  Preconditions are checked in a fixed
    order and reported as typed OverrideResult failures, never raised.
    Successful decisions are persisted and announced through the webhook
    notifier (best effort).

Architecture position:
    Kernel > Services.  May import from domain/, services/.

Invariants enforced:
    - Only Pending -> Approved | Rejected (OVERRIDE_TRANSITIONS).
    - A decided transaction cannot be decided again; a second call fails
      without changing state.
    - Blank justification / reason is always rejected; minimum length and
      approver roles follow OverrideApprovalSettings.
    - Flush only: the caller owns commit/rollback.

Failure modes:
    - OverrideResult failures: TRANSACTION_NOT_FOUND, VALIDATION_ERROR.
    - Store (database) errors propagate.
    - Webhook failures are logged and swallowed.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from compliance_kernel.domain import error_codes
from compliance_kernel.domain.clock import Clock, SystemClock
from compliance_kernel.domain.override import (
    OverrideApprovalSettings,
    OverrideResult,
    OverrideStatus,
)
from compliance_kernel.domain.ports import (
    NullWebhookNotifier,
    TransactionStore,
    WebhookNotifier,
)
from compliance_kernel.domain.transaction import Transaction
from compliance_kernel.domain.validation import ValidationContext
from compliance_kernel.domain.webhooks import (
    OrderStatusChangedPayload,
    OverrideApprovedPayload,
    WebhookEventType,
)
from compliance_kernel.logging_config import get_logger
from compliance_kernel.services.transaction_store import SqlTransactionStore

logger = get_logger("services.override")


class OverrideService:
    """Approve or reject pending overrides."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: OverrideApprovalSettings | None = None,
        webhook_notifier: WebhookNotifier | None = None,
        transaction_store: TransactionStore | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or OverrideApprovalSettings()
        self._webhooks = webhook_notifier or NullWebhookNotifier()
        self._transactions = transaction_store or SqlTransactionStore(session)

    def _check_decidable(
        self, transaction_id: UUID,
    ) -> tuple[Transaction | None, OverrideResult | None]:
        transaction = self._transactions.get(transaction_id)
        if transaction is None:
            return None, OverrideResult.not_found(transaction_id)
        if not transaction.requires_override:
            return transaction, OverrideResult.failure(
                error_codes.VALIDATION_ERROR,
                "Transaction does not require override",
                transaction,
            )
        if transaction.override_status != OverrideStatus.PENDING:
            return transaction, OverrideResult.failure(
                error_codes.VALIDATION_ERROR,
                "Transaction override is not pending "
                f"(current status: {transaction.override_status.value})",
                transaction,
            )
        return transaction, None

    def approve_override(
        self,
        transaction_id: UUID,
        approver: str,
        justification: str,
        context: ValidationContext | None = None,
        approver_roles: tuple[str, ...] | None = None,
    ) -> OverrideResult:
        """
        Approve the pending override of a transaction.

        Postconditions on success:
            - override_status is Approved; decision fields are set.
            - OverrideApproved and OrderApproved webhooks are dispatched when
              notify_on_approval is set.
        """
        context = context or ValidationContext(actor_id=approver)
        log_extra = {"transaction_id": str(transaction_id), **context.log_fields()}

        transaction, failure = self._check_decidable(transaction_id)
        if failure is None and (not justification or not justification.strip()):
            failure = OverrideResult.failure(
                error_codes.VALIDATION_ERROR,
                "Override justification is required",
                transaction,
            )
        if failure is None:
            message = self._settings.justification_error(justification)
            if message is not None:
                failure = OverrideResult.failure(
                    error_codes.VALIDATION_ERROR, message, transaction,
                )
        if failure is None and not self._settings.is_authorized(approver_roles):
            failure = OverrideResult.failure(
                error_codes.VALIDATION_ERROR,
                f"Approver '{approver}' is not authorised to approve overrides",
                transaction,
            )
        if failure is not None:
            logger.info(
                "override_approval_refused",
                extra={**log_extra, "error_code": failure.error_code,
                       "reason": failure.message},
            )
            return failure

        decided_at = self._clock.now()
        transaction.approve_override(approver, justification.strip(), decided_at)
        self._transactions.update(transaction)

        logger.info(
            "override_approved",
            extra={
                **log_extra,
                "external_id": transaction.external_id,
                "approver": approver,
                "violation_count": len(transaction.violations),
            },
        )

        if self._settings.notify_on_approval:
            self._dispatch(
                WebhookEventType.OVERRIDE_APPROVED,
                OverrideApprovedPayload.from_transaction(transaction, decided_at),
                log_extra,
            )
            self._dispatch(
                WebhookEventType.ORDER_APPROVED,
                OrderStatusChangedPayload.approved(transaction, decided_at),
                log_extra,
            )
        return OverrideResult.ok(transaction)

    def reject_override(
        self,
        transaction_id: UUID,
        rejecter: str,
        reason: str,
        context: ValidationContext | None = None,
        approver_roles: tuple[str, ...] | None = None,
    ) -> OverrideResult:
        """Reject the pending override; the transaction stays blocked."""
        context = context or ValidationContext(actor_id=rejecter)
        log_extra = {"transaction_id": str(transaction_id), **context.log_fields()}

        transaction, failure = self._check_decidable(transaction_id)
        if failure is None and (not reason or not reason.strip()):
            failure = OverrideResult.failure(
                error_codes.VALIDATION_ERROR,
                "Rejection reason is required",
                transaction,
            )
        if failure is None and not self._settings.is_authorized(approver_roles):
            failure = OverrideResult.failure(
                error_codes.VALIDATION_ERROR,
                f"User '{rejecter}' is not authorised to reject overrides",
                transaction,
            )
        if failure is not None:
            logger.info(
                "override_rejection_refused",
                extra={**log_extra, "error_code": failure.error_code,
                       "reason": failure.message},
            )
            return failure

        decided_at = self._clock.now()
        transaction.reject_override(rejecter, reason.strip(), decided_at)
        self._transactions.update(transaction)

        logger.info(
            "override_rejected",
            extra={
                **log_extra,
                "external_id": transaction.external_id,
                "rejecter": rejecter,
            },
        )

        if self._settings.notify_on_rejection:
            self._dispatch(
                WebhookEventType.ORDER_REJECTED,
                OrderStatusChangedPayload.rejected(
                    transaction, decided_at, rejecter, reason.strip(),
                ),
                log_extra,
            )
        return OverrideResult.ok(transaction)

    def get_pending_overrides(self) -> list[Transaction]:
        return self._transactions.get_pending_overrides()

    def get_pending_override_count(self) -> int:
        return self._transactions.get_pending_override_count()

    def _dispatch(
        self,
        event_type: WebhookEventType,
        payload: Any,
        log_extra: dict[str, Any],
    ) -> None:
        try:
            self._webhooks.dispatch(event_type, payload)
        except Exception as exc:
            logger.warning(
                "webhook_dispatch_failed",
                extra={**log_extra, "event_type": event_type.value, "error": str(exc)},
            )
