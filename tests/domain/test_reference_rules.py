"""
Tests for the rules carried by reference data and override settings.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from compliance_kernel.domain.override import OverrideApprovalSettings
from compliance_kernel.domain.reference import (
    COMPANY_HOLDER_ID,
    BusinessCategory,
    HolderType,
    Licence,
    LicenceStatus,
    LicenceTypeIds,
    PermittedActivity,
    Threshold,
    ThresholdPeriod,
    ThresholdType,
)


def make_licence(status=LicenceStatus.VALID, expiry_date=date(2024, 12, 31)) -> Licence:
    return Licence(
        licence_id=uuid4(),
        licence_number="WHS-1",
        holder_id=COMPANY_HOLDER_ID,
        holder_type=HolderType.COMPANY,
        licence_type_id=LicenceTypeIds().wholesale,
        status=status,
        permitted_activities=PermittedActivity.POSSESS | PermittedActivity.DISTRIBUTE,
        expiry_date=expiry_date,
    )


def make_threshold(**kwargs) -> Threshold:
    defaults = dict(
        threshold_id=uuid4(),
        name="Limit",
        threshold_type=ThresholdType.QUANTITY,
        period=ThresholdPeriod.PER_TRANSACTION,
        limit_value=Decimal("100"),
    )
    defaults.update(kwargs)
    return Threshold(**defaults)


class TestLicence:
    def test_permits_requires_superset(self):
        licence = make_licence()

        assert licence.permits(PermittedActivity.DISTRIBUTE)
        assert licence.permits(PermittedActivity.POSSESS | PermittedActivity.DISTRIBUTE)
        assert not licence.permits(PermittedActivity.DISTRIBUTE | PermittedActivity.EXPORT)

    def test_expiry_day_still_usable(self):
        licence = make_licence()

        assert licence.is_usable(date(2024, 12, 31))
        assert not licence.is_usable(date(2025, 1, 1))
        assert licence.is_expired(date(2025, 1, 1))

    def test_no_expiry_date_never_expires(self):
        assert make_licence(expiry_date=None).is_usable(date(2099, 1, 1))

    def test_suspended_not_usable_but_not_expired(self):
        licence = make_licence(status=LicenceStatus.SUSPENDED)

        assert not licence.is_usable(date(2024, 6, 1))
        assert not licence.is_expired(date(2024, 6, 1))


class TestThreshold:
    def test_effective_window_inclusive(self):
        threshold = make_threshold(
            effective_from=date(2024, 1, 1), effective_to=date(2024, 6, 30),
        )

        assert threshold.is_effective(date(2024, 1, 1))
        assert threshold.is_effective(date(2024, 6, 30))
        assert not threshold.is_effective(date(2023, 12, 31))
        assert not threshold.is_effective(date(2024, 7, 1))

    def test_substance_match_case_insensitive(self):
        threshold = make_threshold(substance_code="MORPH")

        assert threshold.applies_to_substance("morph")
        assert not threshold.applies_to_substance("FENT")
        assert make_threshold().applies_to_substance("FENT")

    def test_customer_scope_overrides_category(self):
        customer_id = uuid4()
        threshold = make_threshold(
            customer_id=customer_id, customer_category=BusinessCategory.VETERINARIAN,
        )

        assert threshold.applies_to_customer(customer_id, BusinessCategory.COMMUNITY_PHARMACY)
        assert not threshold.applies_to_customer(uuid4(), BusinessCategory.VETERINARIAN)

    def test_specificity_order(self):
        customer = make_threshold(customer_id=uuid4())
        category = make_threshold(customer_category=BusinessCategory.MANUFACTURER)
        substance = make_threshold(substance_code="MORPH")
        global_limit = make_threshold()

        ordered = sorted(
            [global_limit, substance, customer, category],
            key=lambda t: t.specificity,
            reverse=True,
        )

        assert ordered == [customer, category, substance, global_limit]

    @pytest.mark.parametrize("amount, exceeded, warning", [
        ("79.99", False, False),
        ("80", False, True),
        ("99.99", False, True),
        ("100", True, False),
        ("150", True, False),
    ])
    def test_limit_and_warning_bands(self, amount, exceeded, warning):
        threshold = make_threshold()

        assert threshold.is_exceeded(Decimal(amount)) is exceeded
        assert threshold.is_warning(Decimal(amount)) is warning

    def test_max_override_only_when_override_allowed(self):
        capped = make_threshold(max_override_percent=Decimal("120"))
        locked = make_threshold(allow_override=False, max_override_percent=Decimal("120"))

        assert not capped.exceeds_max_override(Decimal("120"))
        assert capped.exceeds_max_override(Decimal("120.01"))
        assert not locked.exceeds_max_override(Decimal("500"))

    def test_zero_limit_usage_percent(self):
        assert make_threshold(limit_value=Decimal("0")).usage_percent(Decimal("5")) == Decimal("100")


class TestOverrideApprovalSettings:
    def test_defaults(self):
        settings = OverrideApprovalSettings()

        assert settings.authorized_roles == ("ComplianceManager",)
        assert settings.min_justification_length == 20

    def test_justification_length_counts_stripped_text(self):
        settings = OverrideApprovalSettings(min_justification_length=5)

        assert settings.justification_error("  abcd  ") == (
            "Override justification must be at least 5 characters (got 4)"
        )
        assert settings.justification_error("abcde") is None

    def test_roles(self):
        settings = OverrideApprovalSettings(authorized_roles=("QAUser",))

        assert settings.is_authorized(None)
        assert settings.is_authorized(("Sales", "QAUSER"))
        assert not settings.is_authorized(("Sales",))
        assert not settings.is_authorized(())
        assert OverrideApprovalSettings(authorized_roles=()).is_authorized(("Sales",))
