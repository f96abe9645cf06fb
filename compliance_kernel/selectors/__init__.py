"""Read-only selectors over compliance master data."""

from compliance_kernel.selectors.base import BaseSelector
from compliance_kernel.selectors.reference_selector import (
    CustomerSelector,
    LicenceSelector,
    ProductSelector,
    SubstanceSelector,
    ThresholdSelector,
)

__all__ = [
    "BaseSelector",
    "CustomerSelector",
    "LicenceSelector",
    "ProductSelector",
    "SubstanceSelector",
    "ThresholdSelector",
]
