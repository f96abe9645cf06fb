"""
Pure domain layer.

This module contains domain value objects, lifecycle tables and
collaborator ports with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the Clock abstraction itself)
- I/O

Reference data and findings are immutable; Transaction and TransactionLine
are the only mutable objects and are owned by the calling request.
"""

from compliance_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from compliance_kernel.domain.override import (
    OVERRIDE_TRANSITIONS,
    TERMINAL_OVERRIDE_STATUSES,
    OverrideApprovalSettings,
    OverrideResult,
    OverrideStatus,
    can_transition,
)
from compliance_kernel.domain.reference import (
    COMPANY_HOLDER_ID,
    BusinessCategory,
    ControlledSubstance,
    Customer,
    CustomerApprovalStatus,
    GdpQualificationStatus,
    HolderType,
    Licence,
    LicenceStatus,
    LicenceTypeIds,
    OpiumActList,
    PermittedActivity,
    PrecursorCategory,
    Threshold,
    ThresholdPeriod,
    ThresholdType,
)
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
from compliance_kernel.domain.validation import ValidationContext, ValidationOutcome

__all__ = [
    "BusinessCategory",
    "COMPANY_HOLDER_ID",
    "Clock",
    "ControlledSubstance",
    "Customer",
    "CustomerApprovalStatus",
    "DeterministicClock",
    "GdpQualificationStatus",
    "HolderType",
    "Licence",
    "LicenceStatus",
    "LicenceTypeIds",
    "OVERRIDE_TRANSITIONS",
    "OpiumActList",
    "OverrideApprovalSettings",
    "OverrideResult",
    "OverrideStatus",
    "PermittedActivity",
    "PrecursorCategory",
    "SystemClock",
    "TERMINAL_OVERRIDE_STATUSES",
    "Threshold",
    "ThresholdPeriod",
    "ThresholdType",
    "Transaction",
    "TransactionDirection",
    "TransactionLicenceUsage",
    "TransactionLine",
    "TransactionType",
    "TransactionViolation",
    "ValidationContext",
    "ValidationOutcome",
    "ValidationStatus",
    "ViolationSeverity",
    "can_transition",
]
