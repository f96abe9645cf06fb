"""
Tests for the transaction outcome and override lifecycle.

Tests cover:
- apply_validation_outcome: Passed iff no violations, override routing
- warnings-only outcome
- override transitions (table and Transaction methods)
- reset_validation
- cross-border derivation
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from compliance_kernel.domain.override import (
    OVERRIDE_TRANSITIONS,
    TERMINAL_OVERRIDE_STATUSES,
    OverrideStatus,
    can_transition,
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
from compliance_kernel.exceptions import InvalidOverrideTransitionError

NOW = datetime(2024, 6, 14, 12, 0, tzinfo=timezone.utc)

HARD = TransactionViolation("CUSTOMER_SUSPENDED", "suspended", can_override=False)
SOFT = TransactionViolation("LICENCE_MISSING", "missing", can_override=True)
WARNING = TransactionViolation(
    "VALIDATION_WARNING", "approaching", severity=ViolationSeverity.WARNING, can_override=True,
)


def make_transaction(**kwargs) -> Transaction:
    defaults = dict(
        external_id="SO-1",
        transaction_type=TransactionType.ORDER,
        customer_account="CUST-001",
        customer_data_area_id="nlpd",
        transaction_date=NOW,
        lines=[TransactionLine(1, "ITEM-1", "nlpd", Decimal("10"), "MORPH")],
    )
    defaults.update(kwargs)
    return Transaction(**defaults)


def make_pending() -> Transaction:
    transaction = make_transaction()
    transaction.apply_validation_outcome([SOFT], [], NOW)
    return transaction


# =========================================================================
# Outcome
# =========================================================================


class TestApplyValidationOutcome:
    def test_no_violations_passes(self):
        transaction = make_transaction()

        transaction.apply_validation_outcome([], [], NOW)

        assert transaction.validation_status == ValidationStatus.PASSED
        assert transaction.requires_override is False
        assert transaction.override_status == OverrideStatus.NONE
        assert transaction.validation_date == NOW
        assert transaction.can_proceed() is True

    def test_all_overridable_routes_to_pending(self):
        transaction = make_pending()

        assert transaction.validation_status == ValidationStatus.FAILED
        assert transaction.requires_override is True
        assert transaction.override_status == OverrideStatus.PENDING
        assert transaction.can_proceed() is False

    def test_any_hard_violation_blocks_override(self):
        transaction = make_transaction()

        transaction.apply_validation_outcome([SOFT, HARD], [], NOW)

        assert transaction.validation_status == ValidationStatus.FAILED
        assert transaction.requires_override is False
        assert transaction.override_status == OverrideStatus.NONE

    def test_warnings_only_still_fail(self):
        transaction = make_transaction()

        transaction.apply_validation_outcome([WARNING], [], NOW)

        assert transaction.validation_status == ValidationStatus.FAILED
        assert transaction.requires_override is True
        assert transaction.errors == []
        assert transaction.warnings == [WARNING]

    def test_usages_recorded(self):
        transaction = make_transaction()
        usage = TransactionLicenceUsage(
            transaction.transaction_id, uuid4(), "WHS-1", (1,), Decimal("10"),
        )

        transaction.apply_validation_outcome([SOFT], [usage], NOW)

        assert transaction.licences_used == [usage.licence_id]


# =========================================================================
# Override lifecycle
# =========================================================================


class TestOverrideTransitions:
    def test_table_covers_every_status(self):
        assert set(OVERRIDE_TRANSITIONS) == set(OverrideStatus)

    @pytest.mark.parametrize("status", sorted(TERMINAL_OVERRIDE_STATUSES, key=lambda s: s.value))
    def test_terminal_statuses_have_no_exits(self, status):
        assert all(not can_transition(status, target) for target in OverrideStatus)

    def test_pending_to_decisions(self):
        assert can_transition(OverrideStatus.PENDING, OverrideStatus.APPROVED)
        assert can_transition(OverrideStatus.PENDING, OverrideStatus.REJECTED)
        assert not can_transition(OverrideStatus.NONE, OverrideStatus.APPROVED)

    def test_approve_sets_decision_fields(self):
        transaction = make_pending()

        transaction.approve_override("qa.lead", "checked with the inspector", NOW)

        assert transaction.override_status == OverrideStatus.APPROVED
        assert transaction.override_decision_by == "qa.lead"
        assert transaction.override_decision_date == NOW
        assert transaction.override_justification == "checked with the inspector"
        assert transaction.can_proceed() is True

    def test_reject_sets_reason(self):
        transaction = make_pending()

        transaction.reject_override("qa.lead", "no licence on file", NOW)

        assert transaction.override_status == OverrideStatus.REJECTED
        assert transaction.override_rejection_reason == "no licence on file"
        assert transaction.can_proceed() is False

    def test_second_decision_raises(self):
        transaction = make_pending()
        transaction.approve_override("qa.lead", "checked with the inspector", NOW)

        with pytest.raises(InvalidOverrideTransitionError) as exc_info:
            transaction.reject_override("qa.lead", "changed my mind", NOW)

        assert exc_info.value.from_status == "Approved"
        assert exc_info.value.to_status == "Rejected"
        assert transaction.override_status == OverrideStatus.APPROVED

    def test_decision_without_pending_raises(self):
        transaction = make_transaction()
        transaction.apply_validation_outcome([], [], NOW)

        with pytest.raises(InvalidOverrideTransitionError):
            transaction.approve_override("qa.lead", "nothing to approve here", NOW)


class TestResetValidation:
    def test_clears_outcome_and_decision(self):
        transaction = make_pending()
        transaction.approve_override("qa.lead", "checked with the inspector", NOW)
        transaction.lines[0].licence_id = uuid4()
        transaction.lines[0].error_code = "LICENCE_MISSING"

        transaction.reset_validation()

        assert transaction.validation_status == ValidationStatus.PENDING
        assert transaction.violations == []
        assert transaction.licence_usages == []
        assert transaction.override_status == OverrideStatus.NONE
        assert transaction.override_decision_by is None
        assert transaction.override_justification is None
        assert transaction.lines[0].licence_id is None
        assert transaction.lines[0].error_code is None


class TestCrossBorder:
    @pytest.mark.parametrize("destination, expected", [
        (None, False),
        ("", False),
        ("NL", False),
        (" nl ", False),
        ("BE", True),
    ])
    def test_is_cross_border(self, destination, expected):
        assert make_transaction(destination_country=destination).is_cross_border is expected

    def test_permit_direction(self):
        outbound = make_transaction(
            destination_country="BE", direction=TransactionDirection.OUTBOUND,
        )
        inbound = make_transaction(
            origin_country="DE", destination_country="NL",
            direction=TransactionDirection.INBOUND,
        )

        assert outbound.requires_export_permit() and not outbound.requires_import_permit()
        assert inbound.requires_import_permit() and not inbound.requires_export_permit()
