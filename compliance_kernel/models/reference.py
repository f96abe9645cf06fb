"""
Module: compliance_kernel.models.reference
Responsibility: ORM persistence for compliance master data -- customers,
    licences, controlled substances, products and thresholds.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - Customers are unique per (customer_account, data_area_id).
    - Products are unique per (item_number, data_area_id).
    - Substance codes are unique.
    - Permitted activities are stored as the integer value of the flag set.

Failure modes:
    - IntegrityError on duplicate natural keys.
    - ValueError from enum construction in to_dto() if a row holds a value
      outside the domain enum.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from compliance_kernel.db.base import Base, UUIDString
from compliance_kernel.domain.reference import (
    BusinessCategory,
    ControlledSubstance,
    Customer,
    CustomerApprovalStatus,
    GdpQualificationStatus,
    HolderType,
    Licence,
    LicenceStatus,
    OpiumActList,
    PermittedActivity,
    PrecursorCategory,
    Threshold,
    ThresholdPeriod,
    ThresholdType,
)


class CustomerModel(Base):
    """Compliance extension of an ERP customer account."""

    __tablename__ = "customers"

    __table_args__ = (
        UniqueConstraint(
            "customer_account", "data_area_id", name="uq_customers_account_area",
        ),
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    customer_account: Mapped[str] = mapped_column(String(50), nullable=False)
    data_area_id: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    business_category: Mapped[str] = mapped_column(String(50), nullable=False)
    approval_status: Mapped[str] = mapped_column(String(50), nullable=False)
    gdp_qualification_status: Mapped[str] = mapped_column(String(50), nullable=False)
    is_suspended: Mapped[bool] = mapped_column(default=False, nullable=False)
    suspension_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Customer {self.customer_account}/{self.data_area_id}>"

    def to_dto(self) -> Customer:
        return Customer(
            customer_id=self.customer_id,
            customer_account=self.customer_account,
            data_area_id=self.data_area_id,
            name=self.name,
            business_category=BusinessCategory(self.business_category),
            approval_status=CustomerApprovalStatus(self.approval_status),
            gdp_qualification_status=GdpQualificationStatus(self.gdp_qualification_status),
            is_suspended=self.is_suspended,
            suspension_reason=self.suspension_reason,
        )

    @classmethod
    def from_dto(cls, dto: Customer) -> CustomerModel:
        return cls(
            customer_id=dto.customer_id,
            customer_account=dto.customer_account,
            data_area_id=dto.data_area_id,
            name=dto.name,
            business_category=dto.business_category.value,
            approval_status=dto.approval_status.value,
            gdp_qualification_status=dto.gdp_qualification_status.value,
            is_suspended=dto.is_suspended,
            suspension_reason=dto.suspension_reason,
        )


class LicenceModel(Base):
    """Licence held by a customer or by the company."""

    __tablename__ = "licences"

    __table_args__ = (
        Index("ix_licences_holder", "holder_id", "holder_type"),
    )

    licence_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    licence_number: Mapped[str] = mapped_column(String(100), nullable=False)
    holder_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    holder_type: Mapped[str] = mapped_column(String(20), nullable=False)
    licence_type_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    permitted_activities: Mapped[int] = mapped_column(nullable=False, default=0)
    expiry_date: Mapped[date | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Licence {self.licence_number} status={self.status}>"

    def to_dto(self) -> Licence:
        return Licence(
            licence_id=self.licence_id,
            licence_number=self.licence_number,
            holder_id=self.holder_id,
            holder_type=HolderType(self.holder_type),
            licence_type_id=self.licence_type_id,
            status=LicenceStatus(self.status),
            permitted_activities=PermittedActivity(self.permitted_activities),
            expiry_date=self.expiry_date,
        )

    @classmethod
    def from_dto(cls, dto: Licence) -> LicenceModel:
        return cls(
            licence_id=dto.licence_id,
            licence_number=dto.licence_number,
            holder_id=dto.holder_id,
            holder_type=dto.holder_type.value,
            licence_type_id=dto.licence_type_id,
            status=dto.status.value,
            permitted_activities=dto.permitted_activities.value,
            expiry_date=dto.expiry_date,
        )


class ControlledSubstanceModel(Base):
    __tablename__ = "controlled_substances"

    substance_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    opium_act_list: Mapped[str] = mapped_column(String(20), nullable=False, default="None")
    precursor_category: Mapped[str] = mapped_column(String(20), nullable=False, default="None")
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    def to_dto(self) -> ControlledSubstance:
        return ControlledSubstance(
            substance_code=self.substance_code,
            name=self.name,
            opium_act_list=OpiumActList(self.opium_act_list),
            precursor_category=PrecursorCategory(self.precursor_category),
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: ControlledSubstance) -> ControlledSubstanceModel:
        return cls(
            substance_code=dto.substance_code,
            name=dto.name,
            opium_act_list=dto.opium_act_list.value,
            precursor_category=dto.precursor_category.value,
            is_active=dto.is_active,
        )


class ProductModel(Base):
    """ERP item mapped to the controlled substance it contains (if any)."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("item_number", "data_area_id", name="uq_products_item_area"),
    )

    item_number: Mapped[str] = mapped_column(String(50), nullable=False)
    data_area_id: Mapped[str] = mapped_column(String(10), nullable=False)
    substance_code: Mapped[str | None] = mapped_column(String(50), nullable=True)


class ThresholdModel(Base):
    __tablename__ = "thresholds"

    __table_args__ = (
        Index("ix_thresholds_type_active", "threshold_type", "is_active"),
    )

    threshold_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    threshold_type: Mapped[str] = mapped_column(String(30), nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)
    limit_value: Mapped[Decimal] = mapped_column(nullable=False)
    limit_unit: Mapped[str] = mapped_column(String(20), nullable=False, default="g")
    substance_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    substance_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    customer_category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    warning_threshold_percent: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("80"),
    )
    allow_override: Mapped[bool] = mapped_column(default=True, nullable=False)
    max_override_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    effective_from: Mapped[date | None] = mapped_column(nullable=True)
    effective_to: Mapped[date | None] = mapped_column(nullable=True)
    regulatory_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<Threshold {self.name} {self.threshold_type}/{self.period}>"

    def to_dto(self) -> Threshold:
        return Threshold(
            threshold_id=self.threshold_id,
            name=self.name,
            threshold_type=ThresholdType(self.threshold_type),
            period=ThresholdPeriod(self.period),
            limit_value=Decimal(self.limit_value),
            limit_unit=self.limit_unit,
            substance_code=self.substance_code,
            substance_name=self.substance_name,
            customer_id=self.customer_id,
            customer_category=(
                BusinessCategory(self.customer_category)
                if self.customer_category else None
            ),
            warning_threshold_percent=Decimal(self.warning_threshold_percent),
            allow_override=self.allow_override,
            max_override_percent=(
                Decimal(self.max_override_percent)
                if self.max_override_percent is not None else None
            ),
            is_active=self.is_active,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            regulatory_reference=self.regulatory_reference,
        )

    @classmethod
    def from_dto(cls, dto: Threshold) -> ThresholdModel:
        return cls(
            threshold_id=dto.threshold_id,
            name=dto.name,
            threshold_type=dto.threshold_type.value,
            period=dto.period.value,
            limit_value=dto.limit_value,
            limit_unit=dto.limit_unit,
            substance_code=dto.substance_code,
            substance_name=dto.substance_name,
            customer_id=dto.customer_id,
            customer_category=(
                dto.customer_category.value if dto.customer_category else None
            ),
            warning_threshold_percent=dto.warning_threshold_percent,
            allow_override=dto.allow_override,
            max_override_percent=dto.max_override_percent,
            is_active=dto.is_active,
            effective_from=dto.effective_from,
            effective_to=dto.effective_to,
            regulatory_reference=dto.regulatory_reference,
        )
