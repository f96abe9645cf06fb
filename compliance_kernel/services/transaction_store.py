"""
compliance_kernel.services.transaction_store -- SQL-backed transaction store.

Responsibility:
    Implements the TransactionStore port over the compliance_transactions
    tables: create/update transactions and their lines, record and clear
    violations and licence usages, and answer the historical queries the
    threshold evaluation depends on.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Flush only: the caller owns commit/rollback.
    - Historical usage and transaction counts only include transactions that
      may proceed: validation Passed, or Failed with an approved override.
    - exclude_transaction_id keeps a transaction out of its own history, so
      a revalidation never counts itself twice.
    - Violations are read back in the order they were added.

Failure modes:
    - TransactionNotFoundError from update() for an unknown transaction id.
    - IntegrityError from create() on a duplicate transaction or external id.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select

from compliance_kernel.domain.override import OverrideStatus
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionLicenceUsage,
    TransactionViolation,
    ValidationStatus,
)
from compliance_kernel.exceptions import TransactionNotFoundError
from compliance_kernel.logging_config import get_logger
from compliance_kernel.models.transaction import (
    TransactionLicenceUsageModel,
    TransactionLineModel,
    TransactionModel,
    TransactionViolationModel,
)
from compliance_kernel.services.base import BaseService

logger = get_logger("services.transaction_store")


def _can_proceed_clause():
    return or_(
        TransactionModel.validation_status == ValidationStatus.PASSED.value,
        and_(
            TransactionModel.validation_status == ValidationStatus.FAILED.value,
            TransactionModel.override_status == OverrideStatus.APPROVED.value,
        ),
    )


class SqlTransactionStore(BaseService[TransactionModel]):
    """TransactionStore over SQLAlchemy.  Returns domain Transactions."""

    # -- Reads --------------------------------------------------------------

    def _load(self, transaction_id: UUID) -> TransactionModel | None:
        return self.session.execute(
            select(TransactionModel).where(
                TransactionModel.transaction_id == transaction_id,
            )
        ).scalar_one_or_none()

    def _violations_for(self, transaction_id: UUID) -> list[TransactionViolation]:
        models = self.session.execute(
            select(TransactionViolationModel)
            .where(TransactionViolationModel.transaction_id == transaction_id)
            .order_by(TransactionViolationModel.sequence)
        ).scalars().all()
        return [model.to_dto() for model in models]

    def _usages_for(self, transaction_id: UUID) -> list[TransactionLicenceUsage]:
        models = self.session.execute(
            select(TransactionLicenceUsageModel)
            .where(TransactionLicenceUsageModel.transaction_id == transaction_id)
            .order_by(TransactionLicenceUsageModel.licence_number)
        ).scalars().all()
        return [model.to_dto() for model in models]

    def _to_domain(self, model: TransactionModel) -> Transaction:
        return model.to_dto(
            violations=self._violations_for(model.transaction_id),
            licence_usages=self._usages_for(model.transaction_id),
        )

    def get(self, transaction_id: UUID) -> Transaction | None:
        model = self._load(transaction_id)
        return self._to_domain(model) if model is not None else None

    def get_by_external_id(self, external_id: str) -> Transaction | None:
        model = self.session.execute(
            select(TransactionModel).where(TransactionModel.external_id == external_id)
        ).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def get_in_period(
        self,
        customer_account: str,
        data_area_id: str,
        substance_code: str | None,
        from_date: datetime,
        to_date: datetime,
        exclude_transaction_id: UUID | None = None,
    ) -> list[Transaction]:
        """Transactions that may proceed for the customer within [from, to].

        When ``substance_code`` is given, only transactions with at least one
        line for that substance are returned.
        """
        stmt = select(TransactionModel).where(
            TransactionModel.customer_account == customer_account,
            TransactionModel.customer_data_area_id == data_area_id,
            TransactionModel.transaction_date >= from_date,
            TransactionModel.transaction_date <= to_date,
            _can_proceed_clause(),
        )
        if exclude_transaction_id is not None:
            stmt = stmt.where(TransactionModel.transaction_id != exclude_transaction_id)
        if substance_code:
            stmt = stmt.where(
                TransactionModel.lines.any(
                    func.lower(TransactionLineModel.substance_code) == substance_code.lower()
                )
            )
        stmt = stmt.order_by(TransactionModel.transaction_date, TransactionModel.external_id)
        return [self._to_domain(model) for model in self.session.execute(stmt).scalars()]

    def get_substance_usage(
        self,
        customer_account: str,
        data_area_id: str,
        substance_code: str,
        from_date: datetime,
        to_date: datetime,
        exclude_transaction_id: UUID | None = None,
    ) -> Decimal:
        """Summed line quantity of ``substance_code`` over transactions in the window."""
        stmt = (
            select(func.sum(TransactionLineModel.quantity))
            .join(
                TransactionModel,
                TransactionModel.transaction_id == TransactionLineModel.transaction_id,
            )
            .where(
                TransactionModel.customer_account == customer_account,
                TransactionModel.customer_data_area_id == data_area_id,
                TransactionModel.transaction_date >= from_date,
                TransactionModel.transaction_date <= to_date,
                func.lower(TransactionLineModel.substance_code) == substance_code.lower(),
                _can_proceed_clause(),
            )
        )
        if exclude_transaction_id is not None:
            stmt = stmt.where(TransactionModel.transaction_id != exclude_transaction_id)
        total = self.session.execute(stmt).scalar()
        return Decimal(str(total)) if total is not None else Decimal("0")

    def get_pending_overrides(self) -> list[Transaction]:
        models = self.session.execute(
            select(TransactionModel)
            .where(
                TransactionModel.requires_override.is_(True),
                TransactionModel.override_status == OverrideStatus.PENDING.value,
            )
            .order_by(TransactionModel.transaction_date, TransactionModel.external_id)
        ).scalars().all()
        return [self._to_domain(model) for model in models]

    def get_pending_override_count(self) -> int:
        return self.session.execute(
            select(func.count(TransactionModel.id)).where(
                TransactionModel.requires_override.is_(True),
                TransactionModel.override_status == OverrideStatus.PENDING.value,
            )
        ).scalar_one()

    def list_transactions(
        self,
        status: ValidationStatus | None = None,
        customer_account: str | None = None,
        data_area_id: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> list[Transaction]:
        """Transactions matching every given filter, newest first."""
        stmt = select(TransactionModel)
        if status is not None:
            stmt = stmt.where(TransactionModel.validation_status == status.value)
        if customer_account is not None:
            stmt = stmt.where(TransactionModel.customer_account == customer_account)
        if data_area_id is not None:
            stmt = stmt.where(TransactionModel.customer_data_area_id == data_area_id)
        if from_date is not None:
            stmt = stmt.where(TransactionModel.transaction_date >= from_date)
        if to_date is not None:
            stmt = stmt.where(TransactionModel.transaction_date <= to_date)
        stmt = stmt.order_by(
            TransactionModel.transaction_date.desc(), TransactionModel.external_id,
        )
        return [self._to_domain(model) for model in self.session.execute(stmt).scalars()]

    # -- Writes -------------------------------------------------------------

    def create(self, transaction: Transaction) -> None:
        self.session.add(TransactionModel.from_dto(transaction))
        self.session.flush()
        logger.debug(
            "transaction_created",
            extra={
                "transaction_id": str(transaction.transaction_id),
                "external_id": transaction.external_id,
            },
        )

    def update(self, transaction: Transaction) -> None:
        model = self._load(transaction.transaction_id)
        if model is None:
            raise TransactionNotFoundError(str(transaction.transaction_id))
        model.update_from(transaction)
        self.session.flush()

    def add_violations(
        self, transaction_id: UUID, violations: Sequence[TransactionViolation],
    ) -> None:
        start = self.session.execute(
            select(func.count(TransactionViolationModel.id)).where(
                TransactionViolationModel.transaction_id == transaction_id,
            )
        ).scalar_one()
        for offset, violation in enumerate(violations):
            self.session.add(
                TransactionViolationModel.from_dto(transaction_id, start + offset, violation)
            )
        self.session.flush()

    def clear_violations(self, transaction_id: UUID) -> None:
        self.session.execute(
            delete(TransactionViolationModel).where(
                TransactionViolationModel.transaction_id == transaction_id,
            )
        )
        self.session.flush()

    def add_licence_usage(self, usage: TransactionLicenceUsage) -> None:
        self.session.add(TransactionLicenceUsageModel.from_dto(usage))
        self.session.flush()

    def clear_licence_usages(self, transaction_id: UUID) -> None:
        self.session.execute(
            delete(TransactionLicenceUsageModel).where(
                TransactionLicenceUsageModel.transaction_id == transaction_id,
            )
        )
        self.session.flush()
