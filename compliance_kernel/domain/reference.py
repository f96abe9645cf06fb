"""
Reference data -- Licences, customers, controlled substances and thresholds.

Responsibility:
    Immutable snapshots of the master data the validation engine reads:
    who may trade (customers), what they may do (licences and their
    permitted-activity flags), what is controlled (substances) and how much
    may move (thresholds).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Read by compliance_engines; produced by compliance_kernel.selectors.

Invariants enforced:
    - Permitted activities are a flag set; coverage means superset.
    - Threshold limit comparisons are inclusive (amount >= limit exceeds).
    - Expiry is evaluated against an explicit as-of date, never a clock.

Failure modes:
    (none -- pure value objects)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum, Flag
from uuid import UUID

_HUNDRED = Decimal("100")


# =============================================================================
# Licences
# =============================================================================


class PermittedActivity(Flag):
    """Activities a licence authorises its holder to perform."""

    NONE = 0
    POSSESS = 1
    STORE = 2
    DISTRIBUTE = 4
    IMPORT = 8
    EXPORT = 16
    HANDLE_PRECURSORS = 32


class LicenceStatus(str, Enum):
    VALID = "Valid"
    EXPIRED = "Expired"
    SUSPENDED = "Suspended"


class HolderType(str, Enum):
    CUSTOMER = "Customer"
    COMPANY = "Company"


@dataclass(frozen=True)
class LicenceTypeIds:
    """Licence-type identities that drive substance coverage and permits."""

    wholesale: UUID = UUID("10000000-0000-0000-0000-000000000001")
    opium_exemption: UUID = UUID("10000000-0000-0000-0000-000000000002")
    import_permit: UUID = UUID("10000000-0000-0000-0000-000000000003")
    export_permit: UUID = UUID("10000000-0000-0000-0000-000000000004")
    pharmacy: UUID = UUID("10000000-0000-0000-0000-000000000005")
    precursor_registration: UUID = UUID("10000000-0000-0000-0000-000000000006")


COMPANY_HOLDER_ID = UUID("00000000-0000-0000-0000-000000000001")


@dataclass(frozen=True)
class Licence:
    """A licence held by a customer or by the company itself."""

    licence_id: UUID
    licence_number: str
    holder_id: UUID
    holder_type: HolderType
    licence_type_id: UUID
    status: LicenceStatus
    permitted_activities: PermittedActivity
    expiry_date: date | None = None

    def is_expired(self, as_of: date) -> bool:
        if self.status == LicenceStatus.EXPIRED:
            return True
        return self.expiry_date is not None and self.expiry_date < as_of

    def is_usable(self, as_of: date) -> bool:
        """Valid status and not past expiry on ``as_of``."""
        return self.status == LicenceStatus.VALID and not self.is_expired(as_of)

    def permits(self, required: PermittedActivity) -> bool:
        return (self.permitted_activities & required) == required


# =============================================================================
# Customers
# =============================================================================


class BusinessCategory(str, Enum):
    HOSPITAL_PHARMACY = "HospitalPharmacy"
    COMMUNITY_PHARMACY = "CommunityPharmacy"
    VETERINARIAN = "Veterinarian"
    MANUFACTURER = "Manufacturer"
    WHOLESALER_EU = "WholesalerEU"
    WHOLESALER_NON_EU = "WholesalerNonEU"
    RESEARCH_INSTITUTION = "ResearchInstitution"


class CustomerApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    CONDITIONALLY_APPROVED = "ConditionallyApproved"
    REJECTED = "Rejected"


class GdpQualificationStatus(str, Enum):
    NOT_QUALIFIED = "NotQualified"
    PENDING = "Pending"
    APPROVED = "Approved"
    CONDITIONALLY_APPROVED = "ConditionallyApproved"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


GDP_REQUIRED_CATEGORIES: frozenset[BusinessCategory] = frozenset({
    BusinessCategory.WHOLESALER_EU,
    BusinessCategory.WHOLESALER_NON_EU,
    BusinessCategory.HOSPITAL_PHARMACY,
    BusinessCategory.COMMUNITY_PHARMACY,
})

GDP_ACCEPTED_STATUSES: frozenset[GdpQualificationStatus] = frozenset({
    GdpQualificationStatus.APPROVED,
    GdpQualificationStatus.CONDITIONALLY_APPROVED,
})


@dataclass(frozen=True)
class Customer:
    """Compliance view of a customer, keyed by account + data area."""

    customer_id: UUID
    customer_account: str
    data_area_id: str
    name: str
    business_category: BusinessCategory
    approval_status: CustomerApprovalStatus
    gdp_qualification_status: GdpQualificationStatus
    is_suspended: bool = False
    suspension_reason: str | None = None

    @property
    def requires_gdp_qualification(self) -> bool:
        return self.business_category in GDP_REQUIRED_CATEGORIES


# =============================================================================
# Controlled substances
# =============================================================================


class OpiumActList(str, Enum):
    NONE = "None"
    LIST_I = "ListI"
    LIST_II = "ListII"


class PrecursorCategory(str, Enum):
    NONE = "None"
    CATEGORY_1 = "Category1"
    CATEGORY_2 = "Category2"
    CATEGORY_3 = "Category3"


@dataclass(frozen=True)
class ControlledSubstance:
    substance_code: str
    name: str
    opium_act_list: OpiumActList = OpiumActList.NONE
    precursor_category: PrecursorCategory = PrecursorCategory.NONE
    is_active: bool = True

    @property
    def is_opium_act_substance(self) -> bool:
        return self.opium_act_list != OpiumActList.NONE

    @property
    def is_precursor(self) -> bool:
        return self.precursor_category != PrecursorCategory.NONE


# =============================================================================
# Thresholds
# =============================================================================


class ThresholdType(str, Enum):
    QUANTITY = "Quantity"
    CUMULATIVE_QUANTITY = "CumulativeQuantity"
    FREQUENCY = "Frequency"


QUANTITY_THRESHOLD_TYPES: frozenset[ThresholdType] = frozenset({
    ThresholdType.QUANTITY,
    ThresholdType.CUMULATIVE_QUANTITY,
})


class ThresholdPeriod(str, Enum):
    PER_TRANSACTION = "PerTransaction"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


@dataclass(frozen=True)
class Threshold:
    """
    A configured quantity or frequency limit.

    Scope is expressed by three optional selectors: ``substance_code``
    (None = every substance), ``customer_id`` (None = every customer) and
    ``customer_category`` (None = every category).  A customer-specific
    threshold applies only to that customer regardless of category.
    """

    threshold_id: UUID
    name: str
    threshold_type: ThresholdType
    period: ThresholdPeriod
    limit_value: Decimal
    limit_unit: str = "g"
    substance_code: str | None = None
    substance_name: str | None = None
    customer_id: UUID | None = None
    customer_category: BusinessCategory | None = None
    warning_threshold_percent: Decimal = Decimal("80")
    allow_override: bool = True
    max_override_percent: Decimal | None = None
    is_active: bool = True
    effective_from: date | None = None
    effective_to: date | None = None
    regulatory_reference: str | None = None

    def is_effective(self, as_of: date) -> bool:
        if not self.is_active:
            return False
        if self.effective_from is not None and as_of < self.effective_from:
            return False
        if self.effective_to is not None and as_of > self.effective_to:
            return False
        return True

    def applies_to_substance(self, substance_code: str) -> bool:
        if not self.substance_code:
            return True
        return self.substance_code.casefold() == substance_code.casefold()

    def applies_to_customer(
        self, customer_id: UUID, category: BusinessCategory,
    ) -> bool:
        if self.customer_id is not None:
            return self.customer_id == customer_id
        return self.customer_category is None or self.customer_category == category

    def is_exceeded(self, amount: Decimal) -> bool:
        return amount >= self.limit_value

    def is_warning(self, amount: Decimal) -> bool:
        warning_level = self.limit_value * self.warning_threshold_percent / _HUNDRED
        return warning_level <= amount < self.limit_value

    def exceeds_max_override(self, amount: Decimal) -> bool:
        if not self.allow_override or self.max_override_percent is None:
            return False
        return amount > self.limit_value * self.max_override_percent / _HUNDRED

    def usage_percent(self, amount: Decimal) -> Decimal:
        if self.limit_value == 0:
            return _HUNDRED
        return amount / self.limit_value * _HUNDRED

    @property
    def specificity(self) -> tuple[bool, bool, bool]:
        """Sort key: customer > category > substance > global."""
        return (
            self.customer_id is not None,
            self.customer_category is not None,
            bool(self.substance_code),
        )
