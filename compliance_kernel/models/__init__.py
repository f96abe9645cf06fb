"""ORM models for the compliance kernel."""

from compliance_kernel.models.reference import (
    ControlledSubstanceModel,
    CustomerModel,
    LicenceModel,
    ProductModel,
    ThresholdModel,
)
from compliance_kernel.models.transaction import (
    TransactionLicenceUsageModel,
    TransactionLineModel,
    TransactionModel,
    TransactionViolationModel,
)

__all__ = [
    "ControlledSubstanceModel",
    "CustomerModel",
    "LicenceModel",
    "ProductModel",
    "ThresholdModel",
    "TransactionLicenceUsageModel",
    "TransactionLineModel",
    "TransactionModel",
    "TransactionViolationModel",
]
