"""
Override workflow -- lifecycle table and typed results.

Responsibility:
    Defines the override status lifecycle for transactions that fail
    validation with overridable violations, and the result object the
    override workflow returns for both success and precondition failures.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - None -> Pending is created implicitly by a failing validation.
    - Pending -> Approved | Rejected are the only human transitions.
    - Approved and Rejected are terminal; a second decision always fails.

Failure modes:
    (none -- precondition failures are values, see OverrideResult)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from compliance_kernel.domain import error_codes

if TYPE_CHECKING:
    from compliance_kernel.domain.transaction import Transaction


class OverrideStatus(str, Enum):
    """Override lifecycle states."""

    NONE = "None"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


OVERRIDE_TRANSITIONS: dict[OverrideStatus, frozenset[OverrideStatus]] = {
    OverrideStatus.NONE: frozenset({OverrideStatus.PENDING}),
    OverrideStatus.PENDING: frozenset({
        OverrideStatus.APPROVED,
        OverrideStatus.REJECTED,
    }),
    OverrideStatus.APPROVED: frozenset(),
    OverrideStatus.REJECTED: frozenset(),
}

TERMINAL_OVERRIDE_STATUSES: frozenset[OverrideStatus] = frozenset({
    OverrideStatus.APPROVED,
    OverrideStatus.REJECTED,
})


def can_transition(current: OverrideStatus, target: OverrideStatus) -> bool:
    """Check whether the override lifecycle permits ``current -> target``."""
    return target in OVERRIDE_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class OverrideResult:
    """
    Outcome of an approve/reject request.

    Precondition failures (unknown transaction, nothing to override, not
    pending, missing justification) are reported here rather than raised so
    that API layers can map ``error_code`` to a user-facing message.
    """

    success: bool
    error_code: str | None = None
    message: str | None = None
    transaction: Transaction | None = None

    @classmethod
    def ok(cls, transaction: Transaction) -> OverrideResult:
        return cls(success=True, transaction=transaction)

    @classmethod
    def failure(
        cls,
        error_code: str,
        message: str,
        transaction: Transaction | None = None,
    ) -> OverrideResult:
        return cls(
            success=False,
            error_code=error_code,
            message=message,
            transaction=transaction,
        )

    @classmethod
    def not_found(cls, transaction_id: object) -> OverrideResult:
        return cls.failure(
            error_codes.TRANSACTION_NOT_FOUND,
            f"Transaction {transaction_id} not found",
        )


@dataclass(frozen=True)
class OverrideApprovalSettings:
    """Rules applied to a human override decision before it is recorded.

    ``authorized_roles`` is only enforced when the caller supplies the
    approver's roles; identity and role resolution live outside this core.
    """

    authorized_roles: tuple[str, ...] = ("ComplianceManager",)
    require_justification: bool = True
    min_justification_length: int = 20
    notify_on_approval: bool = True
    notify_on_rejection: bool = True

    def justification_error(self, justification: str) -> str | None:
        """Message describing why ``justification`` is insufficient, else None."""
        if not self.require_justification:
            return None
        length = len(justification.strip())
        if length < self.min_justification_length:
            return (
                f"Override justification must be at least "
                f"{self.min_justification_length} characters (got {length})"
            )
        return None

    def is_authorized(self, approver_roles: tuple[str, ...] | None) -> bool:
        if approver_roles is None or not self.authorized_roles:
            return True
        allowed = {role.casefold() for role in self.authorized_roles}
        return any(role.casefold() in allowed for role in approver_roles)
