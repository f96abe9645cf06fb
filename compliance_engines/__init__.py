"""
Module: compliance_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    compliance decision engines.  This is the canonical import surface for
    compliance_kernel.services.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import compliance_kernel/domain (and sibling engine modules).
    MUST NOT import compliance_kernel.services, db, models or selectors.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are taken from the transaction under validation.
    - Decimal-only arithmetic for quantities and limits.
    - Determinism: identical inputs always produce identical findings in
      identical order.

Usage:
    from compliance_engines.licence_coverage import match_licence_coverage
    from compliance_engines.thresholds import period_window
"""

from compliance_engines.cross_border import check_cross_border_permits
from compliance_engines.licence_coverage import (
    DEFAULT_SUBSTANCE_COVERAGE,
    REQUIRED_ACTIVITIES,
    CoverageResult,
    LineCoverage,
    build_substance_coverage_rules,
    find_covering_licence,
    match_licence_coverage,
    required_activities,
)
from compliance_engines.qualification import check_customer_qualification
from compliance_engines.thresholds import (
    evaluate_frequency_thresholds,
    evaluate_quantity,
    evaluate_quantity_thresholds,
    period_window,
    select_frequency_thresholds,
    select_quantity_thresholds,
)

__all__ = [
    "CoverageResult",
    "DEFAULT_SUBSTANCE_COVERAGE",
    "LineCoverage",
    "REQUIRED_ACTIVITIES",
    "build_substance_coverage_rules",
    "check_cross_border_permits",
    "check_customer_qualification",
    "evaluate_frequency_thresholds",
    "evaluate_quantity",
    "evaluate_quantity_thresholds",
    "find_covering_licence",
    "match_licence_coverage",
    "period_window",
    "required_activities",
    "select_frequency_thresholds",
    "select_quantity_thresholds",
]
