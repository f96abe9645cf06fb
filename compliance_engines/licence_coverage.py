"""
compliance_engines.licence_coverage -- Licence-to-substance coverage matching.

Responsibility:
    For every controlled line of a transaction, find the licence (among the
    customer's and the company's) whose permitted activities include the
    activities the transaction requires and whose licence type covers the
    line's substance.  Emit a finding for lines without usable coverage and
    one usage record per covering licence.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import compliance_kernel/domain/ types.

Invariants enforced:
    - Required activities come from REQUIRED_ACTIVITIES keyed by
      transaction type, plus IMPORT/EXPORT for cross-border movements.
    - Substance coverage comes from a rule table keyed by licence-type
      identity; licence types absent from the table cover nothing.
    - Two-pass search: usable licences first (Valid, not expired), then all
      licences so an expired or suspended match can be reported precisely.
    - A line is only assigned a licence that is usable on the transaction
      date and whose activities are a superset of the requirement.

Failure modes:
    (none -- findings are returned as violations)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from uuid import UUID

from compliance_engines.tracer import traced_engine
from compliance_kernel.domain import error_codes
from compliance_kernel.domain.reference import (
    ControlledSubstance,
    Licence,
    LicenceStatus,
    LicenceTypeIds,
    PermittedActivity,
)
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionLicenceUsage,
    TransactionLine,
    TransactionType,
    TransactionViolation,
)

SubstanceCoverageRule = Callable[[ControlledSubstance], bool]


REQUIRED_ACTIVITIES: Mapping[TransactionType, PermittedActivity] = MappingProxyType({
    TransactionType.ORDER: PermittedActivity.DISTRIBUTE,
    TransactionType.SHIPMENT: PermittedActivity.DISTRIBUTE,
    TransactionType.RETURN: PermittedActivity.POSSESS,
    TransactionType.TRANSFER: PermittedActivity.POSSESS | PermittedActivity.STORE,
})


def covers_any_substance(substance: ControlledSubstance) -> bool:
    return True


def covers_opium_act_substances(substance: ControlledSubstance) -> bool:
    return substance.is_opium_act_substance


def covers_precursor_substances(substance: ControlledSubstance) -> bool:
    return substance.is_precursor


def build_substance_coverage_rules(
    licence_type_ids: LicenceTypeIds,
) -> Mapping[UUID, SubstanceCoverageRule]:
    """Map each licence-type identity to the substances it may cover."""
    return MappingProxyType({
        licence_type_ids.wholesale: covers_any_substance,
        licence_type_ids.pharmacy: covers_any_substance,
        licence_type_ids.opium_exemption: covers_opium_act_substances,
        licence_type_ids.precursor_registration: covers_precursor_substances,
    })


DEFAULT_SUBSTANCE_COVERAGE = build_substance_coverage_rules(LicenceTypeIds())


@dataclass(frozen=True)
class LineCoverage:
    """Coverage decision for one controlled line."""

    line_number: int
    substance_code: str
    licence_id: UUID | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def is_covered(self) -> bool:
        return self.licence_id is not None


@dataclass(frozen=True)
class CoverageResult:
    violations: tuple[TransactionViolation, ...]
    line_coverage: tuple[LineCoverage, ...]
    licence_usages: tuple[TransactionLicenceUsage, ...]


def required_activities(
    transaction_type: TransactionType,
    requires_import: bool = False,
    requires_export: bool = False,
    activity_table: Mapping[TransactionType, PermittedActivity] = REQUIRED_ACTIVITIES,
) -> PermittedActivity:
    required = activity_table.get(transaction_type, PermittedActivity.POSSESS)
    if requires_import:
        required |= PermittedActivity.IMPORT
    if requires_export:
        required |= PermittedActivity.EXPORT
    return required


def _find_with_filter(
    substance: ControlledSubstance,
    licences: Sequence[Licence],
    required: PermittedActivity,
    coverage_rules: Mapping[UUID, SubstanceCoverageRule],
    accept: Callable[[Licence], bool],
) -> Licence | None:
    for licence in licences:
        if not accept(licence):
            continue
        if not licence.permits(required):
            continue
        rule = coverage_rules.get(licence.licence_type_id)
        if rule is not None and rule(substance):
            return licence
    return None


def find_covering_licence(
    substance: ControlledSubstance,
    licences: Sequence[Licence],
    required: PermittedActivity,
    as_of: date,
    coverage_rules: Mapping[UUID, SubstanceCoverageRule] = DEFAULT_SUBSTANCE_COVERAGE,
) -> Licence | None:
    """Best-fit licence for ``substance``; usable licences win over the rest.

    The second pass ignores status so that callers can distinguish an
    expired or suspended match from no match at all.
    """
    usable = _find_with_filter(
        substance, licences, required, coverage_rules,
        lambda licence: licence.is_usable(as_of),
    )
    if usable is not None:
        return usable
    return _find_with_filter(
        substance, licences, required, coverage_rules, lambda licence: True,
    )


@traced_engine("licence_coverage", "1.0", fingerprint_fields=("licences",))
def match_licence_coverage(
    *,
    transaction: Transaction,
    substances: Mapping[str, ControlledSubstance | None],
    licences: Sequence[Licence],
    coverage_rules: Mapping[UUID, SubstanceCoverageRule] = DEFAULT_SUBSTANCE_COVERAGE,
    activity_table: Mapping[TransactionType, PermittedActivity] = REQUIRED_ACTIVITIES,
) -> CoverageResult:
    """Match every controlled line of ``transaction`` to a covering licence.

    Args:
        transaction: The transaction; lines without a substance code are
            not controlled and are skipped.
        substances: Registry lookups keyed by substance code (None when the
            registry has no such substance).
        licences: Customer licences followed by company licences.
        coverage_rules: Licence-type identity -> substance predicate.
        activity_table: Transaction type -> required activities.
    """
    as_of = transaction.transaction_date.date()
    required = required_activities(
        transaction.transaction_type,
        requires_import=transaction.requires_import_permit(),
        requires_export=transaction.requires_export_permit(),
        activity_table=activity_table,
    )

    violations: list[TransactionViolation] = []
    coverage: list[LineCoverage] = []
    covered: dict[UUID, list[TransactionLine]] = {}
    licences_by_id = {licence.licence_id: licence for licence in licences}

    for line in transaction.lines:
        code = line.substance_code
        if not code:
            continue

        substance = substances.get(code)
        if substance is None:
            coverage.append(LineCoverage(
                line_number=line.line_number,
                substance_code=code,
                error_code=error_codes.SUBSTANCE_NOT_FOUND,
                error_message=f"Substance with code '{code}' not found",
            ))
            violations.append(TransactionViolation(
                error_code=error_codes.SUBSTANCE_NOT_FOUND,
                message=f"Substance '{code}' not found in system",
                can_override=False,
                line_number=line.line_number,
                substance_code=code,
            ))
            continue

        licence = find_covering_licence(
            substance, licences, required, as_of, coverage_rules,
        )

        if licence is None:
            coverage.append(LineCoverage(
                line_number=line.line_number,
                substance_code=code,
                error_code=error_codes.LICENCE_MISSING,
                error_message=f"No valid licence found for substance '{substance.name}'",
            ))
            violations.append(TransactionViolation(
                error_code=error_codes.LICENCE_MISSING,
                message=(
                    f"No valid licence found for substance '{substance.name}' "
                    f"(Line {line.line_number})"
                ),
                can_override=True,
                line_number=line.line_number,
                substance_code=code,
            ))
        elif licence.is_expired(as_of):
            coverage.append(LineCoverage(
                line_number=line.line_number,
                substance_code=code,
                error_code=error_codes.LICENCE_EXPIRED,
                error_message=f"Licence '{licence.licence_number}' has expired",
            ))
            violations.append(TransactionViolation(
                error_code=error_codes.LICENCE_EXPIRED,
                message=(
                    f"Licence '{licence.licence_number}' expired on "
                    f"{licence.expiry_date} (Line {line.line_number})"
                ),
                can_override=True,
                line_number=line.line_number,
                substance_code=code,
                licence_id=licence.licence_id,
            ))
        elif licence.status == LicenceStatus.SUSPENDED:
            coverage.append(LineCoverage(
                line_number=line.line_number,
                substance_code=code,
                error_code=error_codes.LICENCE_SUSPENDED,
                error_message=f"Licence '{licence.licence_number}' is suspended",
            ))
            violations.append(TransactionViolation(
                error_code=error_codes.LICENCE_SUSPENDED,
                message=(
                    f"Licence '{licence.licence_number}' is suspended "
                    f"(Line {line.line_number})"
                ),
                can_override=False,
                line_number=line.line_number,
                substance_code=code,
                licence_id=licence.licence_id,
            ))
        else:
            coverage.append(LineCoverage(
                line_number=line.line_number,
                substance_code=code,
                licence_id=licence.licence_id,
            ))
            covered.setdefault(licence.licence_id, []).append(line)

    usages = tuple(
        TransactionLicenceUsage(
            transaction_id=transaction.transaction_id,
            licence_id=licence_id,
            licence_number=licences_by_id[licence_id].licence_number,
            line_numbers=tuple(line.line_number for line in lines),
            quantity=sum((line.quantity for line in lines), Decimal("0")),
        )
        for licence_id, lines in covered.items()
    )

    return CoverageResult(
        violations=tuple(violations),
        line_coverage=tuple(coverage),
        licence_usages=usages,
    )
