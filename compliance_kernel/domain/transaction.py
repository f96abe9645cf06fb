"""
Transaction -- The unit of compliance validation.

Responsibility:
    Holds a proposed commercial transaction (order, shipment, return,
    transfer), its lines, and the validation and override state the engine
    records on it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Transaction and TransactionLine are the only mutable domain objects:
    the orchestrator writes the validation outcome and the override
    workflow writes decision fields.  Violations and licence usages are
    frozen value objects.

Invariants enforced:
    - Zero violations <=> validation status Passed.
    - requires_override is true only when validation failed and every
      violation is overridable; override status is then Pending.
    - Override decisions follow OVERRIDE_TRANSITIONS (Pending -> terminal).

Failure modes:
    - InvalidOverrideTransitionError when a decision is applied outside the
      Pending state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from compliance_kernel.domain.override import OverrideStatus, can_transition
from compliance_kernel.domain.reference import ThresholdPeriod, ThresholdType
from compliance_kernel.exceptions import InvalidOverrideTransitionError


class TransactionType(str, Enum):
    ORDER = "Order"
    SHIPMENT = "Shipment"
    RETURN = "Return"
    TRANSFER = "Transfer"


class TransactionDirection(str, Enum):
    INTERNAL = "Internal"
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


class ValidationStatus(str, Enum):
    PENDING = "Pending"
    PASSED = "Passed"
    FAILED = "Failed"


class ViolationSeverity(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"


@dataclass(frozen=True)
class TransactionViolation:
    """
    A single compliance finding.

    Threshold findings also carry the threshold reference and the computed
    numbers (limit, actual amount, period) so that a UI can render
    "X exceeds limit of Y for period Z" without re-deriving them.
    """

    error_code: str
    message: str
    severity: ViolationSeverity = ViolationSeverity.ERROR
    can_override: bool = False
    line_number: int | None = None
    substance_code: str | None = None
    licence_id: UUID | None = None
    threshold_id: UUID | None = None
    threshold_type: ThresholdType | None = None
    limit_value: Decimal | None = None
    actual_value: Decimal | None = None
    period: ThresholdPeriod | None = None

    @property
    def is_warning(self) -> bool:
        return self.severity == ViolationSeverity.WARNING


@dataclass(frozen=True)
class TransactionLicenceUsage:
    """Links a transaction to one covering licence and the lines it covered."""

    transaction_id: UUID
    licence_id: UUID
    licence_number: str
    line_numbers: tuple[int, ...]
    quantity: Decimal


@dataclass
class TransactionLine:
    line_number: int
    item_number: str
    data_area_id: str
    quantity: Decimal
    substance_code: str | None = None
    licence_id: UUID | None = None
    error_code: str | None = None
    error_message: str | None = None
    line_id: UUID = field(default_factory=uuid4)

    def clear_coverage(self) -> None:
        self.licence_id = None
        self.error_code = None
        self.error_message = None


@dataclass
class Transaction:
    external_id: str
    transaction_type: TransactionType
    customer_account: str
    customer_data_area_id: str
    transaction_date: datetime
    lines: list[TransactionLine] = field(default_factory=list)
    origin_country: str = "NL"
    destination_country: str | None = None
    direction: TransactionDirection = TransactionDirection.INTERNAL
    transaction_id: UUID = field(default_factory=uuid4)
    customer_name: str | None = None
    validation_status: ValidationStatus = ValidationStatus.PENDING
    validation_date: datetime | None = None
    override_status: OverrideStatus = OverrideStatus.NONE
    requires_override: bool = False
    override_decision_by: str | None = None
    override_decision_date: datetime | None = None
    override_justification: str | None = None
    override_rejection_reason: str | None = None
    violations: list[TransactionViolation] = field(default_factory=list)
    licence_usages: list[TransactionLicenceUsage] = field(default_factory=list)

    # -- Cross-border -------------------------------------------------------

    @property
    def is_cross_border(self) -> bool:
        if not self.destination_country or not self.destination_country.strip():
            return False
        return (
            self.origin_country.strip().casefold()
            != self.destination_country.strip().casefold()
        )

    def requires_import_permit(self) -> bool:
        return self.is_cross_border and self.direction == TransactionDirection.INBOUND

    def requires_export_permit(self) -> bool:
        return self.is_cross_border and self.direction == TransactionDirection.OUTBOUND

    # -- Outcome ------------------------------------------------------------

    @property
    def errors(self) -> list[TransactionViolation]:
        return [v for v in self.violations if not v.is_warning]

    @property
    def warnings(self) -> list[TransactionViolation]:
        return [v for v in self.violations if v.is_warning]

    @property
    def licences_used(self) -> list[UUID]:
        return [u.licence_id for u in self.licence_usages]

    def can_proceed(self) -> bool:
        """Passed validation, or failed with an approved override."""
        if self.validation_status == ValidationStatus.PASSED:
            return True
        return (
            self.validation_status == ValidationStatus.FAILED
            and self.override_status == OverrideStatus.APPROVED
        )

    def reset_validation(self) -> None:
        """Discard the previous outcome before a full re-run."""
        self.violations = []
        self.licence_usages = []
        self.validation_status = ValidationStatus.PENDING
        self.validation_date = None
        self.requires_override = False
        self.override_status = OverrideStatus.NONE
        self.override_decision_by = None
        self.override_decision_date = None
        self.override_justification = None
        self.override_rejection_reason = None
        for line in self.lines:
            line.clear_coverage()

    def apply_validation_outcome(
        self,
        violations: list[TransactionViolation],
        licence_usages: list[TransactionLicenceUsage],
        validated_at: datetime,
    ) -> None:
        self.violations = list(violations)
        self.licence_usages = list(licence_usages)
        self.validation_date = validated_at
        if not self.violations:
            self.validation_status = ValidationStatus.PASSED
            self.requires_override = False
            self.override_status = OverrideStatus.NONE
            return

        self.validation_status = ValidationStatus.FAILED
        self.requires_override = all(v.can_override for v in self.violations)
        self.override_status = (
            OverrideStatus.PENDING if self.requires_override else OverrideStatus.NONE
        )

    # -- Override decisions -------------------------------------------------

    def _transition_override(self, target: OverrideStatus) -> None:
        if not can_transition(self.override_status, target):
            raise InvalidOverrideTransitionError(
                str(self.transaction_id),
                self.override_status.value,
                target.value,
            )
        self.override_status = target

    def approve_override(
        self, approver: str, justification: str, decided_at: datetime,
    ) -> None:
        self._transition_override(OverrideStatus.APPROVED)
        self.override_decision_by = approver
        self.override_decision_date = decided_at
        self.override_justification = justification

    def reject_override(
        self, rejecter: str, reason: str, decided_at: datetime,
    ) -> None:
        self._transition_override(OverrideStatus.REJECTED)
        self.override_decision_by = rejecter
        self.override_decision_date = decided_at
        self.override_rejection_reason = reason
