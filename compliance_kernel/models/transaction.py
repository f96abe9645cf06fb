"""
Module: compliance_kernel.models.transaction
Responsibility: ORM persistence for validated transactions, their lines, the
    violations recorded against them, and the licence-usage rows produced for
    covered lines.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - transaction_id and external_id are unique per transaction.
    - Lines are owned by their transaction (cascade delete-orphan) and are
      unique per (transaction_id, line_number).
    - Violations keep a per-transaction sequence so that the order in which
      they were found is the order in which they are read back.
    - Violations and licence usages are written and cleared explicitly by the
      transaction store, never through the transaction's line collection.

Failure modes:
    - IntegrityError on duplicate transaction_id / external_id / line number.
    - ValueError (UTCDateTime) when a naive datetime is written.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compliance_kernel.db.base import Base, UUIDString
from compliance_kernel.domain.override import OverrideStatus
from compliance_kernel.domain.reference import ThresholdPeriod, ThresholdType
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionDirection,
    TransactionLicenceUsage,
    TransactionLine,
    TransactionType,
    TransactionViolation,
    ValidationStatus,
    ViolationSeverity,
)


class TransactionModel(Base):
    """
    A transaction submitted for compliance validation.

    Scalar outcome and override fields are overwritten by update_from();
    lines are synchronised by line_id.
    """

    __tablename__ = "compliance_transactions"

    __table_args__ = (
        Index("ix_transactions_customer_date", "customer_account", "customer_data_area_id", "transaction_date"),
        Index("ix_transactions_override", "requires_override", "override_status"),
    )

    transaction_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    customer_account: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_data_area_id: Mapped[str] = mapped_column(String(10), nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    origin_country: Mapped[str] = mapped_column(String(2), nullable=False, default="NL")
    destination_country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    direction: Mapped[str] = mapped_column(String(20), nullable=False)

    validation_status: Mapped[str] = mapped_column(String(20), nullable=False)
    validation_date: Mapped[datetime | None] = mapped_column(nullable=True)

    requires_override: Mapped[bool] = mapped_column(default=False, nullable=False)
    override_status: Mapped[str] = mapped_column(String(20), nullable=False)
    override_decision_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    override_decision_date: Mapped[datetime | None] = mapped_column(nullable=True)
    override_justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    override_rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list[TransactionLineModel]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TransactionLineModel.line_number",
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.external_id} "
            f"validation={self.validation_status} override={self.override_status}>"
        )

    def to_dto(
        self,
        violations: list[TransactionViolation] | None = None,
        licence_usages: list[TransactionLicenceUsage] | None = None,
    ) -> Transaction:
        return Transaction(
            transaction_id=self.transaction_id,
            external_id=self.external_id,
            transaction_type=TransactionType(self.transaction_type),
            customer_account=self.customer_account,
            customer_data_area_id=self.customer_data_area_id,
            customer_name=self.customer_name,
            transaction_date=self.transaction_date,
            origin_country=self.origin_country,
            destination_country=self.destination_country,
            direction=TransactionDirection(self.direction),
            lines=[line.to_dto() for line in self.lines],
            validation_status=ValidationStatus(self.validation_status),
            validation_date=self.validation_date,
            requires_override=self.requires_override,
            override_status=OverrideStatus(self.override_status),
            override_decision_by=self.override_decision_by,
            override_decision_date=self.override_decision_date,
            override_justification=self.override_justification,
            override_rejection_reason=self.override_rejection_reason,
            violations=list(violations or []),
            licence_usages=list(licence_usages or []),
        )

    @classmethod
    def from_dto(cls, dto: Transaction) -> TransactionModel:
        model = cls(
            transaction_id=dto.transaction_id,
            external_id=dto.external_id,
            transaction_type=dto.transaction_type.value,
            customer_account=dto.customer_account,
            customer_data_area_id=dto.customer_data_area_id,
            transaction_date=dto.transaction_date,
            origin_country=dto.origin_country,
            destination_country=dto.destination_country,
            direction=dto.direction.value,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto: Transaction) -> None:
        """Copy mutable fields and synchronise lines from ``dto``."""
        self.customer_name = dto.customer_name
        self.validation_status = dto.validation_status.value
        self.validation_date = dto.validation_date
        self.requires_override = dto.requires_override
        self.override_status = dto.override_status.value
        self.override_decision_by = dto.override_decision_by
        self.override_decision_date = dto.override_decision_date
        self.override_justification = dto.override_justification
        self.override_rejection_reason = dto.override_rejection_reason

        existing = {line.line_id: line for line in self.lines}
        synced: list[TransactionLineModel] = []
        for line in dto.lines:
            model = existing.get(line.line_id)
            if model is None:
                model = TransactionLineModel(line_id=line.line_id)
            model.update_from(line)
            synced.append(model)
        self.lines = synced


class TransactionLineModel(Base):
    __tablename__ = "compliance_transaction_lines"

    __table_args__ = (
        UniqueConstraint("transaction_id", "line_number", name="uq_transaction_lines_number"),
        Index("ix_transaction_lines_substance", "substance_code"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("compliance_transactions.transaction_id"),
        nullable=False,
    )
    line_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    line_number: Mapped[int] = mapped_column(nullable=False)
    item_number: Mapped[str] = mapped_column(String(50), nullable=False)
    data_area_id: Mapped[str] = mapped_column(String(10), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    substance_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    licence_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(500), nullable=True)

    transaction: Mapped[TransactionModel] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<TransactionLine {self.line_number} {self.item_number} {self.quantity}>"

    def to_dto(self) -> TransactionLine:
        return TransactionLine(
            line_id=self.line_id,
            line_number=self.line_number,
            item_number=self.item_number,
            data_area_id=self.data_area_id,
            quantity=Decimal(self.quantity),
            substance_code=self.substance_code,
            licence_id=self.licence_id,
            error_code=self.error_code,
            error_message=self.error_message,
        )

    def update_from(self, dto: TransactionLine) -> None:
        self.line_number = dto.line_number
        self.item_number = dto.item_number
        self.data_area_id = dto.data_area_id
        self.quantity = dto.quantity
        self.substance_code = dto.substance_code
        self.licence_id = dto.licence_id
        self.error_code = dto.error_code
        self.error_message = dto.error_message


class TransactionViolationModel(Base):
    __tablename__ = "compliance_transaction_violations"

    __table_args__ = (
        Index("ix_violations_transaction", "transaction_id", "sequence"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("compliance_transactions.transaction_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(nullable=False, default=0)
    error_code: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False)
    can_override: Mapped[bool] = mapped_column(default=False, nullable=False)
    line_number: Mapped[int | None] = mapped_column(nullable=True)
    substance_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    licence_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    threshold_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    threshold_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    limit_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    actual_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    period: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def to_dto(self) -> TransactionViolation:
        return TransactionViolation(
            error_code=self.error_code,
            message=self.message,
            severity=ViolationSeverity(self.severity),
            can_override=self.can_override,
            line_number=self.line_number,
            substance_code=self.substance_code,
            licence_id=self.licence_id,
            threshold_id=self.threshold_id,
            threshold_type=ThresholdType(self.threshold_type) if self.threshold_type else None,
            limit_value=Decimal(self.limit_value) if self.limit_value is not None else None,
            actual_value=Decimal(self.actual_value) if self.actual_value is not None else None,
            period=ThresholdPeriod(self.period) if self.period else None,
        )

    @classmethod
    def from_dto(
        cls, transaction_id: UUID, sequence: int, dto: TransactionViolation,
    ) -> TransactionViolationModel:
        return cls(
            transaction_id=transaction_id,
            sequence=sequence,
            error_code=dto.error_code,
            message=dto.message,
            severity=dto.severity.value,
            can_override=dto.can_override,
            line_number=dto.line_number,
            substance_code=dto.substance_code,
            licence_id=dto.licence_id,
            threshold_id=dto.threshold_id,
            threshold_type=dto.threshold_type.value if dto.threshold_type else None,
            limit_value=dto.limit_value,
            actual_value=dto.actual_value,
            period=dto.period.value if dto.period else None,
        )


class TransactionLicenceUsageModel(Base):
    """One covering licence and the line numbers it covered on a transaction."""

    __tablename__ = "compliance_transaction_licence_usages"

    __table_args__ = (
        Index("ix_licence_usages_transaction", "transaction_id"),
        Index("ix_licence_usages_licence", "licence_id"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("compliance_transactions.transaction_id"),
        nullable=False,
    )
    licence_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    licence_number: Mapped[str] = mapped_column(String(100), nullable=False)
    line_numbers: Mapped[list] = mapped_column(JSON, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self) -> TransactionLicenceUsage:
        return TransactionLicenceUsage(
            transaction_id=self.transaction_id,
            licence_id=self.licence_id,
            licence_number=self.licence_number,
            line_numbers=tuple(int(n) for n in self.line_numbers),
            quantity=Decimal(self.quantity),
        )

    @classmethod
    def from_dto(cls, dto: TransactionLicenceUsage) -> TransactionLicenceUsageModel:
        return cls(
            transaction_id=dto.transaction_id,
            licence_id=dto.licence_id,
            licence_number=dto.licence_number,
            line_numbers=list(dto.line_numbers),
            quantity=dto.quantity,
        )
