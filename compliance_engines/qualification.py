"""
compliance_engines.qualification -- Customer qualification checks.

Responsibility:
    Decide whether the transaction's customer may trade controlled
    substances at all: known, not suspended, approved, and GDP-qualified
    where the business category demands it.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import compliance_kernel/domain/ types.

Invariants enforced:
    - Unknown customer yields exactly one non-overridable violation and no
      further qualification checks.
    - Suspension is never overridable; missing approval and missing GDP
      qualification are.
    - Categories outside GDP_REQUIRED_CATEGORIES are exempt from the GDP
      check.

Failure modes:
    (none -- findings are returned as violations)
"""

from __future__ import annotations

from compliance_engines.tracer import traced_engine
from compliance_kernel.domain import error_codes
from compliance_kernel.domain.reference import (
    GDP_ACCEPTED_STATUSES,
    Customer,
    CustomerApprovalStatus,
)
from compliance_kernel.domain.transaction import TransactionViolation


@traced_engine("customer_qualification", "1.0", fingerprint_fields=("customer_account",))
def check_customer_qualification(
    *,
    customer: Customer | None,
    customer_account: str,
    data_area_id: str,
) -> tuple[TransactionViolation, ...]:
    """Return every qualification finding for ``customer``."""
    if customer is None:
        return (
            TransactionViolation(
                error_code=error_codes.CUSTOMER_NOT_FOUND,
                message=(
                    f"Customer '{customer_account}' not found in data area "
                    f"'{data_area_id}'"
                ),
                can_override=False,
            ),
        )

    violations: list[TransactionViolation] = []

    if customer.is_suspended:
        violations.append(TransactionViolation(
            error_code=error_codes.CUSTOMER_SUSPENDED,
            message=(
                f"Customer '{customer.name}' is suspended: "
                f"{customer.suspension_reason or 'no reason recorded'}"
            ),
            can_override=False,
        ))

    if customer.approval_status != CustomerApprovalStatus.APPROVED:
        violations.append(TransactionViolation(
            error_code=error_codes.CUSTOMER_NOT_APPROVED,
            message=(
                f"Customer '{customer.name}' is not approved "
                f"(status: {customer.approval_status.value})"
            ),
            can_override=True,
        ))

    if (
        customer.requires_gdp_qualification
        and customer.gdp_qualification_status not in GDP_ACCEPTED_STATUSES
    ):
        violations.append(TransactionViolation(
            error_code=error_codes.GDP_QUALIFICATION_INVALID,
            message=(
                f"Customer '{customer.name}' is not GDP qualified "
                f"(status: {customer.gdp_qualification_status.value})"
            ),
            can_override=True,
        ))

    return tuple(violations)
