"""
Module: compliance_kernel.selectors.reference_selector
Responsibility: Read-only SQLAlchemy implementations of the reference-data
    ports consumed by the validation service: CustomerStore, LicenceStore,
    SubstanceRegistry, ProductRegistry and ThresholdStore.
Architecture position: Kernel > Selectors.  Imports models/ and domain/.

Invariants enforced:
    - Every method returns domain DTOs (frozen dataclasses), never ORM rows.
    - Licences are returned in a stable order (licence number, then id) so
      that coverage matching is deterministic for identical data.
    - get_applicable() returns active quantity/cumulative thresholds ranked
      most specific first; ties keep name order.

Failure modes:
    - SQLAlchemy errors propagate.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import or_, select

from compliance_kernel.domain.reference import (
    QUANTITY_THRESHOLD_TYPES,
    BusinessCategory,
    ControlledSubstance,
    Customer,
    HolderType,
    Licence,
    Threshold,
    ThresholdType,
)
from compliance_kernel.models.reference import (
    ControlledSubstanceModel,
    CustomerModel,
    LicenceModel,
    ProductModel,
    ThresholdModel,
)
from compliance_kernel.selectors.base import BaseSelector


class CustomerSelector(BaseSelector[CustomerModel]):
    def get_by_account(self, customer_account: str, data_area_id: str) -> Customer | None:
        model = self.session.execute(
            select(CustomerModel).where(
                CustomerModel.customer_account == customer_account,
                CustomerModel.data_area_id == data_area_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None


class LicenceSelector(BaseSelector[LicenceModel]):
    def get_by_holder(self, holder_id: UUID, holder_type: HolderType) -> list[Licence]:
        models = self.session.execute(
            select(LicenceModel)
            .where(
                LicenceModel.holder_id == holder_id,
                LicenceModel.holder_type == holder_type.value,
            )
            .order_by(LicenceModel.licence_number, LicenceModel.licence_id)
        ).scalars().all()
        return [model.to_dto() for model in models]


class SubstanceSelector(BaseSelector[ControlledSubstanceModel]):
    def get_by_substance_code(self, substance_code: str) -> ControlledSubstance | None:
        model = self.session.execute(
            select(ControlledSubstanceModel).where(
                ControlledSubstanceModel.substance_code == substance_code,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None


class ProductSelector(BaseSelector[ProductModel]):
    """Resolves ERP items to the controlled substance they contain."""

    def resolve_substance_code(self, item_number: str, data_area_id: str) -> str | None:
        return self.session.execute(
            select(ProductModel.substance_code).where(
                ProductModel.item_number == item_number,
                ProductModel.data_area_id == data_area_id,
            )
        ).scalar_one_or_none()


class ThresholdSelector(BaseSelector[ThresholdModel]):
    def get_applicable(
        self,
        substance_codes: Sequence[str],
        customer_id: UUID,
        customer_category: BusinessCategory,
    ) -> list[Threshold]:
        """Candidate quantity thresholds for the substances and customer.

        Substance matching is case-insensitive and a threshold without a
        substance code applies to every substance.
        """
        models = self.session.execute(
            select(ThresholdModel)
            .where(
                ThresholdModel.is_active.is_(True),
                ThresholdModel.threshold_type.in_(
                    [t.value for t in QUANTITY_THRESHOLD_TYPES]
                ),
                or_(
                    ThresholdModel.customer_id.is_(None),
                    ThresholdModel.customer_id == customer_id,
                ),
                or_(
                    ThresholdModel.customer_category.is_(None),
                    ThresholdModel.customer_category == customer_category.value,
                    ThresholdModel.customer_id == customer_id,
                ),
            )
            .order_by(ThresholdModel.name, ThresholdModel.threshold_id)
        ).scalars().all()

        thresholds = [
            threshold for threshold in (model.to_dto() for model in models)
            if not threshold.substance_code
            or any(threshold.applies_to_substance(code) for code in substance_codes)
        ]
        return sorted(thresholds, key=lambda t: t.specificity, reverse=True)

    def get_by_type(self, threshold_type: ThresholdType) -> list[Threshold]:
        models = self.session.execute(
            select(ThresholdModel)
            .where(
                ThresholdModel.is_active.is_(True),
                ThresholdModel.threshold_type == threshold_type.value,
            )
            .order_by(ThresholdModel.name, ThresholdModel.threshold_id)
        ).scalars().all()
        return [model.to_dto() for model in models]
