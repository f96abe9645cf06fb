"""
compliance_engines.cross_border -- Import/export permit checks.

Responsibility:
    For transactions whose origin and destination countries differ, require
    the company to hold a usable permit of the matching licence type.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import compliance_kernel/domain/ types.

Invariants enforced:
    - Domestic transactions (blank destination or same country, compared
      case-insensitively) never produce findings.
    - Only the company's licences are considered.
    - Missing permits are overridable.

Failure modes:
    (none -- findings are returned as violations)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from compliance_engines.tracer import traced_engine
from compliance_kernel.domain import error_codes
from compliance_kernel.domain.reference import Licence, LicenceTypeIds
from compliance_kernel.domain.transaction import Transaction, TransactionViolation


def holds_usable_permit(
    company_licences: Sequence[Licence], permit_type_id: UUID, as_of: date,
) -> bool:
    return any(
        licence.licence_type_id == permit_type_id and licence.is_usable(as_of)
        for licence in company_licences
    )


@traced_engine("cross_border_permits", "1.0", fingerprint_fields=("company_licences",))
def check_cross_border_permits(
    *,
    transaction: Transaction,
    company_licences: Sequence[Licence],
    licence_type_ids: LicenceTypeIds = LicenceTypeIds(),
) -> tuple[TransactionViolation, ...]:
    """Return permit findings for a cross-border ``transaction``."""
    if not transaction.is_cross_border:
        return ()

    as_of = transaction.transaction_date.date()
    violations: list[TransactionViolation] = []

    if transaction.requires_import_permit() and not holds_usable_permit(
        company_licences, licence_type_ids.import_permit, as_of,
    ):
        violations.append(TransactionViolation(
            error_code=error_codes.IMPORT_PERMIT_REQUIRED,
            message=(
                f"Import from {transaction.origin_country} requires valid import permit"
            ),
            can_override=True,
        ))

    if transaction.requires_export_permit() and not holds_usable_permit(
        company_licences, licence_type_ids.export_permit, as_of,
    ):
        violations.append(TransactionViolation(
            error_code=error_codes.EXPORT_PERMIT_REQUIRED,
            message=(
                f"Export to {transaction.destination_country} requires valid export permit"
            ),
            can_override=True,
        ))

    return tuple(violations)
