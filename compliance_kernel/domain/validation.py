"""
Validation context and outcome value objects.

ValidationContext is passed explicitly through the validation and override
call chain; it carries per-call correlation data for logs and for any audit
collaborator.  ValidationOutcome is what ``validate_transaction`` returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionLicenceUsage,
    TransactionViolation,
    ValidationStatus,
)


@dataclass(frozen=True)
class ValidationContext:
    """Per-call correlation data.  Never stored in thread or task locals."""

    correlation_id: str = field(default_factory=lambda: str(uuid4()))
    actor_id: str | None = None

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"correlation_id": self.correlation_id}
        if self.actor_id is not None:
            fields["actor_id"] = self.actor_id
        return fields


@dataclass(frozen=True)
class ValidationOutcome:
    transaction: Transaction
    violations: tuple[TransactionViolation, ...]
    licence_usages: tuple[TransactionLicenceUsage, ...]
    elapsed_ms: float

    @property
    def transaction_id(self) -> UUID:
        return self.transaction.transaction_id

    @property
    def status(self) -> ValidationStatus:
        return self.transaction.validation_status

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def can_override(self) -> bool:
        return bool(self.violations) and all(v.can_override for v in self.violations)

    @property
    def requires_override(self) -> bool:
        return self.transaction.requires_override

    @property
    def can_proceed(self) -> bool:
        return self.transaction.can_proceed()

    @property
    def errors(self) -> tuple[TransactionViolation, ...]:
        return tuple(v for v in self.violations if not v.is_warning)

    @property
    def warnings(self) -> tuple[TransactionViolation, ...]:
        return tuple(v for v in self.violations if v.is_warning)
