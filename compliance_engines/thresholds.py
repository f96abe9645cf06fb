"""
compliance_engines.thresholds -- Quantity and frequency threshold evaluation.

Responsibility:
    Compute calendar period windows, select the most specific applicable
    threshold per scope, and compare transaction quantities (plus historical
    usage for cumulative thresholds) and transaction counts against limits.

Architecture position:
    Engines -- pure decision layer, zero I/O.
    May only import compliance_kernel/domain/ types.
    Historical usage and counts are fetched by the caller (the validation
    service) and passed in; this module never reads a store or a clock.

Invariants enforced:
    - Inclusive limits: an amount equal to the limit is exceeded.
    - Specificity: for each substance scope (one substance, or all
      substances), threshold type and period only the most specific
      threshold is used (customer > category > substance > global).  Ties
      keep the first candidate in store order.
    - Warnings are Warning-severity and always overridable; frequency has no
      warning tier.
    - An exceeded quantity is overridable only when the threshold allows
      override and the amount does not exceed the maximum override ceiling.

Failure modes:
    (none -- findings are returned as violations)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from compliance_engines.tracer import traced_engine
from compliance_kernel.domain import error_codes
from compliance_kernel.domain.reference import (
    QUANTITY_THRESHOLD_TYPES,
    BusinessCategory,
    Threshold,
    ThresholdPeriod,
    ThresholdType,
)
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionViolation,
    ViolationSeverity,
)

_ONE_TICK = timedelta(microseconds=1)
_ZERO = Decimal("0")


# =============================================================================
# Period windows
# =============================================================================


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _next_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1)
    return moment.replace(month=moment.month + 1)


def period_window(period: ThresholdPeriod, reference: datetime) -> tuple[datetime, datetime]:
    """Inclusive ``(start, end)`` of the calendar period containing ``reference``.

    Weeks start on Sunday.  Each end is one microsecond before the next
    period boundary.  PerTransaction is the reference instant itself.
    """
    if period == ThresholdPeriod.PER_TRANSACTION:
        return reference, reference

    day = _start_of_day(reference)

    if period == ThresholdPeriod.DAILY:
        start = day
        end = day + timedelta(days=1)
    elif period == ThresholdPeriod.WEEKLY:
        days_since_sunday = (reference.weekday() + 1) % 7
        start = day - timedelta(days=days_since_sunday)
        end = start + timedelta(days=7)
    elif period == ThresholdPeriod.MONTHLY:
        start = day.replace(day=1)
        end = _next_month(start)
    elif period == ThresholdPeriod.YEARLY:
        start = day.replace(month=1, day=1)
        end = start.replace(year=start.year + 1)
    else:
        raise ValueError(f"Unknown threshold period: {period!r}")

    return start, end - _ONE_TICK


# =============================================================================
# Threshold selection
# =============================================================================


def _most_specific(candidates: Iterable[Threshold]) -> Threshold | None:
    best: Threshold | None = None
    for threshold in candidates:
        if best is None or threshold.specificity > best.specificity:
            best = threshold
    return best


def select_quantity_thresholds(
    candidates: Sequence[Threshold],
    substance_codes: Sequence[str],
    customer_id: UUID,
    customer_category: BusinessCategory,
    as_of: date,
) -> tuple[Threshold, ...]:
    """Most specific quantity/cumulative threshold per substance scope, type and period.

    Thresholds naming a substance compete only with thresholds for the same
    substance; thresholds without a substance compete only with each other,
    so a cross-substance total limit is checked alongside per-substance ones.
    """
    eligible = [
        t for t in candidates
        if t.threshold_type in QUANTITY_THRESHOLD_TYPES
        and t.is_effective(as_of)
        and t.applies_to_customer(customer_id, customer_category)
    ]
    if not substance_codes:
        return ()

    scopes: dict[str | None, list[Threshold]] = {None: []}
    for code in substance_codes:
        scopes.setdefault(code.casefold(), [])
    for threshold in eligible:
        if not threshold.substance_code:
            scopes[None].append(threshold)
            continue
        key = threshold.substance_code.casefold()
        if key in scopes:
            scopes[key].append(threshold)

    selected: dict[UUID, Threshold] = {}
    for scoped in scopes.values():
        for threshold_type in (ThresholdType.QUANTITY, ThresholdType.CUMULATIVE_QUANTITY):
            for period in ThresholdPeriod:
                best = _most_specific(
                    t for t in scoped
                    if t.threshold_type == threshold_type and t.period == period
                )
                if best is not None:
                    selected.setdefault(best.threshold_id, best)
    return tuple(selected.values())


def select_frequency_thresholds(
    candidates: Sequence[Threshold],
    customer_id: UUID,
    customer_category: BusinessCategory,
    as_of: date,
) -> tuple[Threshold, ...]:
    """Most specific frequency threshold per period for the customer."""
    eligible = [
        t for t in candidates
        if t.threshold_type == ThresholdType.FREQUENCY
        and t.is_effective(as_of)
        and t.applies_to_customer(customer_id, customer_category)
    ]
    selected: list[Threshold] = []
    for period in ThresholdPeriod:
        best = _most_specific(t for t in eligible if t.period == period)
        if best is not None:
            selected.append(best)
    return tuple(selected)


# =============================================================================
# Evaluation
# =============================================================================


def transaction_quantity(transaction: Transaction, threshold: Threshold) -> Decimal:
    """Quantity of the current transaction subject to ``threshold``.

    Substance thresholds sum the matching lines; global thresholds sum every
    controlled line.
    """
    total = _ZERO
    for line in transaction.lines:
        if not line.substance_code:
            continue
        if threshold.substance_code and not threshold.applies_to_substance(line.substance_code):
            continue
        total += line.quantity
    return total


def evaluate_quantity(threshold: Threshold, amount: Decimal) -> TransactionViolation | None:
    """Compare ``amount`` against one quantity threshold."""
    if threshold.is_exceeded(amount):
        substance_name = threshold.substance_name or "All substances"
        unit = threshold.limit_unit
        return TransactionViolation(
            error_code=error_codes.QUANTITY_THRESHOLD_EXCEEDED,
            message=(
                f"{threshold.name}: {amount:.2f} {unit} exceeds limit of "
                f"{threshold.limit_value:.2f} {unit} for {substance_name}"
            ),
            can_override=(
                threshold.allow_override
                and not threshold.exceeds_max_override(amount)
            ),
            substance_code=threshold.substance_code,
            threshold_id=threshold.threshold_id,
            threshold_type=threshold.threshold_type,
            limit_value=threshold.limit_value,
            actual_value=amount,
            period=threshold.period,
        )

    if threshold.is_warning(amount):
        return TransactionViolation(
            error_code=error_codes.VALIDATION_WARNING,
            message=(
                f"Warning: Approaching {threshold.name} limit "
                f"({threshold.usage_percent(amount):.0f}% used)"
            ),
            severity=ViolationSeverity.WARNING,
            can_override=True,
            substance_code=threshold.substance_code,
            threshold_id=threshold.threshold_id,
            threshold_type=threshold.threshold_type,
            limit_value=threshold.limit_value,
            actual_value=amount,
            period=threshold.period,
        )

    return None


@traced_engine("quantity_thresholds", "1.0", fingerprint_fields=("historical_usage",))
def evaluate_quantity_thresholds(
    *,
    transaction: Transaction,
    thresholds: Sequence[Threshold],
    historical_usage: Mapping[UUID, Decimal],
) -> tuple[TransactionViolation, ...]:
    """Evaluate selected quantity thresholds.

    Args:
        transaction: Transaction whose controlled lines are measured.
        thresholds: Output of ``select_quantity_thresholds``.
        historical_usage: Threshold id -> usage already recorded in the
            threshold's period window.  Only read for cumulative thresholds;
            a missing entry counts as zero.
    """
    violations: list[TransactionViolation] = []
    for threshold in thresholds:
        amount = transaction_quantity(transaction, threshold)
        if threshold.threshold_type == ThresholdType.CUMULATIVE_QUANTITY:
            amount += historical_usage.get(threshold.threshold_id, _ZERO)

        violation = evaluate_quantity(threshold, amount)
        if violation is not None:
            violations.append(violation)
    return tuple(violations)


@traced_engine("frequency_thresholds", "1.0", fingerprint_fields=("historical_counts",))
def evaluate_frequency_thresholds(
    *,
    thresholds: Sequence[Threshold],
    historical_counts: Mapping[UUID, int],
) -> tuple[TransactionViolation, ...]:
    """Evaluate frequency thresholds; the transaction under validation counts once.

    Args:
        thresholds: Output of ``select_frequency_thresholds``.
        historical_counts: Threshold id -> number of transactions already
            recorded in the threshold's period window.
    """
    violations: list[TransactionViolation] = []
    for threshold in thresholds:
        count = historical_counts.get(threshold.threshold_id, 0) + 1
        amount = Decimal(count)
        if not threshold.is_exceeded(amount):
            continue
        violations.append(TransactionViolation(
            error_code=error_codes.FREQUENCY_THRESHOLD_EXCEEDED,
            message=(
                f"{threshold.name}: {count} transactions exceeds limit of "
                f"{threshold.limit_value:.0f} per {threshold.period.value}"
            ),
            can_override=(
                threshold.allow_override
                and not threshold.exceeds_max_override(amount)
            ),
            threshold_id=threshold.threshold_id,
            threshold_type=threshold.threshold_type,
            limit_value=threshold.limit_value,
            actual_value=amount,
            period=threshold.period,
        ))
    return tuple(violations)
