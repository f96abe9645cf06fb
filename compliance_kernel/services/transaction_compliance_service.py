"""
TransactionComplianceService -- validation orchestrator for proposed transactions.

Responsibility:
    Decides, for one transaction, whether it may proceed, must be blocked,
    or must be routed to a human override decision.  Gathers reference
    data and historical usage from the stores, delegates every decision to
    the pure engines in ``compliance_engines``, aggregates their findings,
    records the outcome on the transaction and hands it to the transaction
    store.

Architecture position:
    Kernel > Services -- imperative shell.
    Calls compliance_engines for decisions; reads through the port
    protocols in compliance_kernel.domain.ports.

    Flow:
        validate_transaction(transaction)
            -> usage lock held from here until the flush
            -> customer qualification
            -> licence coverage (per controlled line)
            -> quantity thresholds
            -> cross-border permits
            -> frequency thresholds
            -> apply outcome, persist, record violations and usages

Invariants enforced:
    - Fixed step order; no step short-circuits another.
    - Passed iff the aggregated violation list is empty.
    - Licence usages computed for covered lines are kept even when other
      lines fail (partial coverage).
    - Revalidation clears stored violations, licence usages and the previous
      outcome before running the full pipeline again.
    - A transaction never counts toward its own historical usage.
    - Flush only: the caller owns commit/rollback.

Failure modes:
    - TransactionNotFoundError from revalidate_transaction() for an unknown id.
    - UsageLockTimeoutError if the configured usage lock cannot be acquired.
    - Store (database) errors propagate uncaught after being logged.
    - Webhook failures are logged and swallowed.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from compliance_engines.cross_border import check_cross_border_permits
from compliance_engines.licence_coverage import (
    CoverageResult,
    build_substance_coverage_rules,
    match_licence_coverage,
)
from compliance_engines.qualification import check_customer_qualification
from compliance_engines.thresholds import (
    evaluate_frequency_thresholds,
    evaluate_quantity_thresholds,
    period_window,
    select_frequency_thresholds,
    select_quantity_thresholds,
)
from compliance_kernel.domain.clock import Clock, SystemClock
from compliance_kernel.domain.ports import (
    CustomerStore,
    LicenceStore,
    NullUsageLock,
    NullWebhookNotifier,
    ProductRegistry,
    SubstanceRegistry,
    ThresholdStore,
    TransactionStore,
    UsageLock,
    WebhookNotifier,
)
from compliance_kernel.domain.reference import (
    COMPANY_HOLDER_ID,
    ControlledSubstance,
    Customer,
    HolderType,
    Licence,
    LicenceTypeIds,
    Threshold,
    ThresholdType,
)
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionViolation,
    ValidationStatus,
)
from compliance_kernel.domain.validation import ValidationContext, ValidationOutcome
from compliance_kernel.domain.webhooks import OrderStatusChangedPayload, WebhookEventType
from compliance_kernel.exceptions import TransactionNotFoundError
from compliance_kernel.logging_config import get_logger
from compliance_kernel.selectors.reference_selector import (
    CustomerSelector,
    LicenceSelector,
    ProductSelector,
    SubstanceSelector,
    ThresholdSelector,
)
from compliance_kernel.services.transaction_store import SqlTransactionStore

logger = get_logger("services.transaction_compliance")


class TransactionComplianceService:
    """
    Validates transactions against customer, licence, threshold and permit rules.

    Every collaborator defaults to the SQLAlchemy implementation bound to
    ``session``; any of them can be replaced (tests use this to inject
    failing notifiers or alternative stores).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        company_holder_id: UUID = COMPANY_HOLDER_ID,
        licence_type_ids: LicenceTypeIds | None = None,
        webhook_notifier: WebhookNotifier | None = None,
        usage_lock: UsageLock | None = None,
        transaction_store: TransactionStore | None = None,
        customer_store: CustomerStore | None = None,
        licence_store: LicenceStore | None = None,
        threshold_store: ThresholdStore | None = None,
        substance_registry: SubstanceRegistry | None = None,
        product_registry: ProductRegistry | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._company_holder_id = company_holder_id
        self._licence_type_ids = licence_type_ids or LicenceTypeIds()
        self._coverage_rules = build_substance_coverage_rules(self._licence_type_ids)
        self._webhooks = webhook_notifier or NullWebhookNotifier()
        self._usage_lock = usage_lock or NullUsageLock()
        self._transactions = transaction_store or SqlTransactionStore(session)
        self._customers = customer_store or CustomerSelector(session)
        self._licences = licence_store or LicenceSelector(session)
        self._thresholds = threshold_store or ThresholdSelector(session)
        self._substances = substance_registry or SubstanceSelector(session)
        self._products = product_registry or ProductSelector(session)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_transaction(
        self,
        transaction: Transaction,
        context: ValidationContext | None = None,
    ) -> ValidationOutcome:
        """
        Run the full validation pipeline and persist the outcome.

        Postconditions:
            - transaction.validation_status is Passed or Failed.
            - The transaction is created in the store if it was not there yet,
              otherwise updated; violations and licence usages are recorded.

        Raises:
            UsageLockTimeoutError: usage lock not acquired in time.
            Any store error, unchanged.
        """
        context = context or ValidationContext()
        log_extra = {
            "transaction_id": str(transaction.transaction_id),
            "external_id": transaction.external_id,
            "customer_account": transaction.customer_account,
            "data_area_id": transaction.customer_data_area_id,
            **context.log_fields(),
        }
        logger.info("validation_started", extra=log_extra)
        started = time.monotonic()

        try:
            with self.hold_usage(
                transaction.customer_account, transaction.customer_data_area_id,
            ):
                violations, coverage = self._run_checks(transaction)
                transaction.apply_validation_outcome(
                    violations, list(coverage.licence_usages), self._clock.now(),
                )
                self._persist(transaction)
        except Exception:
            logger.exception("validation_error", extra=log_extra)
            raise

        elapsed_ms = round((time.monotonic() - started) * 1000, 3)
        outcome = ValidationOutcome(
            transaction=transaction,
            violations=tuple(transaction.violations),
            licence_usages=tuple(transaction.licence_usages),
            elapsed_ms=elapsed_ms,
        )

        if outcome.is_valid:
            logger.info(
                "validation_passed",
                extra={**log_extra, "elapsed_ms": elapsed_ms,
                       "licence_usage_count": len(outcome.licence_usages)},
            )
            self._dispatch(
                WebhookEventType.ORDER_APPROVED,
                OrderStatusChangedPayload.approved(transaction, transaction.validation_date),
                log_extra,
            )
        else:
            logger.warning(
                "validation_failed",
                extra={
                    **log_extra,
                    "elapsed_ms": elapsed_ms,
                    "violation_count": len(outcome.violations),
                    "error_codes": sorted({v.error_code for v in outcome.violations}),
                    "requires_override": transaction.requires_override,
                },
            )
        return outcome

    def hold_usage(self, customer_account: str, data_area_id: str) -> Any:
        """
        Context manager holding the customer's usage lock.

        validate_transaction() holds it from the first history read until
        the outcome is flushed.  The service never commits, so a caller that
        needs the lock to cover its commit wraps both::

            with session_scope() as session:
                service = TransactionComplianceService(session, usage_lock=lock)
                with service.hold_usage(account, data_area):
                    service.validate_transaction(transaction)
                    session.commit()

        The configured lock is re-entrant for the holding thread.
        """
        return self._usage_lock.hold(customer_account, data_area_id)

    def revalidate_transaction(
        self,
        transaction_id: UUID,
        context: ValidationContext | None = None,
    ) -> ValidationOutcome:
        """
        Discard the stored outcome of a transaction and validate it again.

        Raises:
            TransactionNotFoundError: no transaction with this id.
        """
        context = context or ValidationContext()
        transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(str(transaction_id))

        logger.info(
            "revalidation_started",
            extra={
                "transaction_id": str(transaction_id),
                "external_id": transaction.external_id,
                "previous_status": transaction.validation_status.value,
                **context.log_fields(),
            },
        )
        self._transactions.clear_violations(transaction_id)
        self._transactions.clear_licence_usages(transaction_id)
        transaction.reset_validation()
        return self.validate_transaction(transaction, context)

    def _run_checks(
        self, transaction: Transaction,
    ) -> tuple[list[TransactionViolation], CoverageResult]:
        customer = self._customers.get_by_account(
            transaction.customer_account, transaction.customer_data_area_id,
        )

        # (a) customer qualification
        violations = list(check_customer_qualification(
            customer=customer,
            customer_account=transaction.customer_account,
            data_area_id=transaction.customer_data_area_id,
        ))
        if customer is not None:
            transaction.customer_name = customer.name

        # (b) licence coverage
        self._resolve_substance_codes(transaction)
        company_licences = self._company_licences()
        coverage = self._check_licence_coverage(transaction, customer, company_licences)
        violations.extend(coverage.violations)

        # (c) quantity thresholds
        violations.extend(self._check_quantity_thresholds(transaction, customer))

        # (d) cross-border permits
        violations.extend(check_cross_border_permits(
            transaction=transaction,
            company_licences=company_licences,
            licence_type_ids=self._licence_type_ids,
        ))

        # (e) frequency thresholds
        violations.extend(self._check_frequency_thresholds(
            customer,
            transaction.transaction_date,
            exclude_transaction_id=transaction.transaction_id,
        ))
        return violations, coverage

    def _persist(self, transaction: Transaction) -> None:
        if self._transactions.get(transaction.transaction_id) is None:
            self._transactions.create(transaction)
        else:
            self._transactions.update(transaction)

        if transaction.violations:
            self._transactions.add_violations(
                transaction.transaction_id, transaction.violations,
            )
        for usage in transaction.licence_usages:
            self._transactions.add_licence_usage(usage)

    # =========================================================================
    # Licence coverage
    # =========================================================================

    def _resolve_substance_codes(self, transaction: Transaction) -> None:
        """Resolve each line's substance code once and cache it on the line."""
        for line in transaction.lines:
            if line.substance_code:
                continue
            line.substance_code = self._products.resolve_substance_code(
                line.item_number, line.data_area_id,
            )

    def _company_licences(self) -> list[Licence]:
        return self._licences.get_by_holder(self._company_holder_id, HolderType.COMPANY)

    def _check_licence_coverage(
        self,
        transaction: Transaction,
        customer: Customer | None,
        company_licences: list[Licence],
    ) -> CoverageResult:
        customer_licences = (
            self._licences.get_by_holder(customer.customer_id, HolderType.CUSTOMER)
            if customer is not None else []
        )

        substances: dict[str, ControlledSubstance | None] = {}
        for line in transaction.lines:
            code = line.substance_code
            if code and code not in substances:
                substances[code] = self._substances.get_by_substance_code(code)

        result = match_licence_coverage(
            transaction=transaction,
            substances=substances,
            licences=[*customer_licences, *company_licences],
            coverage_rules=self._coverage_rules,
        )

        by_line = {entry.line_number: entry for entry in result.line_coverage}
        for line in transaction.lines:
            entry = by_line.get(line.line_number)
            if entry is None:
                continue
            line.licence_id = entry.licence_id
            line.error_code = entry.error_code
            line.error_message = entry.error_message
        return result

    # =========================================================================
    # Thresholds
    # =========================================================================

    def check_quantity_thresholds(self, transaction: Transaction) -> list[TransactionViolation]:
        """Quantity and cumulative threshold findings for ``transaction`` alone."""
        customer = self._customers.get_by_account(
            transaction.customer_account, transaction.customer_data_area_id,
        )
        self._resolve_substance_codes(transaction)
        return self._check_quantity_thresholds(transaction, customer)

    def check_frequency_thresholds(
        self,
        customer_account: str,
        data_area_id: str,
        transaction_date: datetime,
    ) -> list[TransactionViolation]:
        """Frequency findings for one more transaction by the customer on ``transaction_date``."""
        customer = self._customers.get_by_account(customer_account, data_area_id)
        return self._check_frequency_thresholds(customer, transaction_date)

    def _check_quantity_thresholds(
        self, transaction: Transaction, customer: Customer | None,
    ) -> list[TransactionViolation]:
        if customer is None:
            return []

        substance_codes = list(dict.fromkeys(
            line.substance_code for line in transaction.lines if line.substance_code
        ))
        if not substance_codes:
            return []

        as_of = transaction.transaction_date.date()
        candidates = self._thresholds.get_applicable(
            substance_codes, customer.customer_id, customer.business_category,
        )
        selected = select_quantity_thresholds(
            candidates,
            substance_codes,
            customer.customer_id,
            customer.business_category,
            as_of,
        )

        historical_usage = {
            threshold.threshold_id: self._historical_usage(
                threshold, customer, substance_codes, transaction,
            )
            for threshold in selected
            if threshold.threshold_type == ThresholdType.CUMULATIVE_QUANTITY
        }
        return list(evaluate_quantity_thresholds(
            transaction=transaction,
            thresholds=selected,
            historical_usage=historical_usage,
        ))

    def _historical_usage(
        self,
        threshold: Threshold,
        customer: Customer,
        substance_codes: list[str],
        transaction: Transaction,
    ) -> Decimal:
        """Usage already recorded in the threshold's period window.

        A global threshold sums the usage of every substance on the
        transaction.
        """
        from_date, to_date = period_window(threshold.period, transaction.transaction_date)
        codes = (
            [threshold.substance_code] if threshold.substance_code else substance_codes
        )
        total = Decimal("0")
        for code in codes:
            total += self._transactions.get_substance_usage(
                customer.customer_account,
                customer.data_area_id,
                code,
                from_date,
                to_date,
                exclude_transaction_id=transaction.transaction_id,
            )
        return total

    def _check_frequency_thresholds(
        self,
        customer: Customer | None,
        transaction_date: datetime,
        exclude_transaction_id: UUID | None = None,
    ) -> list[TransactionViolation]:
        if customer is None:
            return []

        selected = select_frequency_thresholds(
            self._thresholds.get_by_type(ThresholdType.FREQUENCY),
            customer.customer_id,
            customer.business_category,
            transaction_date.date(),
        )
        historical_counts: Mapping[UUID, int] = {
            threshold.threshold_id: len(self._transactions.get_in_period(
                customer.customer_account,
                customer.data_area_id,
                None,
                *period_window(threshold.period, transaction_date),
                exclude_transaction_id=exclude_transaction_id,
            ))
            for threshold in selected
        }
        return list(evaluate_frequency_thresholds(
            thresholds=selected,
            historical_counts=historical_counts,
        ))

    # =========================================================================
    # Queries
    # =========================================================================

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        return self._transactions.get(transaction_id)

    def get_transaction_by_external_id(self, external_id: str) -> Transaction | None:
        return self._transactions.get_by_external_id(external_id)

    def list_transactions(
        self,
        status: ValidationStatus | None = None,
        customer_account: str | None = None,
        data_area_id: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> list[Transaction]:
        return self._transactions.list_transactions(
            status=status,
            customer_account=customer_account,
            data_area_id=data_area_id,
            from_date=from_date,
            to_date=to_date,
        )

    # =========================================================================
    # Notifications
    # =========================================================================

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
                extra={
                    **log_extra,
                    "event_type": event_type.value,
                    "error": str(exc),
                },
            )
