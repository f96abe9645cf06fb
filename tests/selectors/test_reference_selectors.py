"""
Tests for the reference-data selectors.
"""

from decimal import Decimal
from uuid import uuid4

from compliance_kernel.domain.reference import (
    COMPANY_HOLDER_ID,
    BusinessCategory,
    HolderType,
    ThresholdType,
)
from compliance_kernel.selectors.reference_selector import (
    CustomerSelector,
    LicenceSelector,
    ProductSelector,
    SubstanceSelector,
    ThresholdSelector,
)


class TestCustomerSelector:
    def test_lookup_by_account_and_area(self, session, create_customer):
        customer = create_customer()
        create_customer(customer_account="CUST-001", data_area_id="bepd", name="Other area")

        found = CustomerSelector(session).get_by_account("CUST-001", "nlpd")

        assert found == customer
        assert CustomerSelector(session).get_by_account("CUST-404", "nlpd") is None


class TestLicenceSelector:
    def test_by_holder_in_licence_number_order(self, session, create_licence):
        second = create_licence(licence_number="WHS-B")
        first = create_licence(licence_number="WHS-A")
        create_licence(licence_number="CUST-1", holder_id=uuid4(), holder_type=HolderType.CUSTOMER)

        found = LicenceSelector(session).get_by_holder(COMPANY_HOLDER_ID, HolderType.COMPANY)

        assert found == [first, second]

    def test_permitted_activities_round_trip(self, session, create_licence):
        licence = create_licence()

        found = LicenceSelector(session).get_by_holder(COMPANY_HOLDER_ID, HolderType.COMPANY)

        assert found[0].permitted_activities == licence.permitted_activities


class TestRegistries:
    def test_substance_lookup(self, session, create_substance):
        substance = create_substance()

        assert SubstanceSelector(session).get_by_substance_code("MORPH") == substance
        assert SubstanceSelector(session).get_by_substance_code("NOPE") is None

    def test_product_resolution(self, session, create_product):
        create_product("ITEM-MORPH-10", "MORPH")
        create_product("ITEM-PARA", None)

        selector = ProductSelector(session)
        assert selector.resolve_substance_code("ITEM-MORPH-10", "nlpd") == "MORPH"
        assert selector.resolve_substance_code("ITEM-PARA", "nlpd") is None
        assert selector.resolve_substance_code("ITEM-MORPH-10", "bepd") is None


class TestThresholdSelector:
    def test_applicable_ranked_by_specificity(self, session, create_threshold):
        customer_id = uuid4()
        global_limit = create_threshold(name="A global")
        substance = create_threshold(name="B substance", substance_code="morph")
        customer = create_threshold(name="C customer", customer_id=customer_id)
        create_threshold(name="D other substance", substance_code="FENT")
        create_threshold(name="E inactive", is_active=False)
        create_threshold(name="F other customer", customer_id=uuid4())
        create_threshold(name="G vets", customer_category=BusinessCategory.VETERINARIAN)
        create_threshold(name="H frequency", threshold_type=ThresholdType.FREQUENCY)

        found = ThresholdSelector(session).get_applicable(
            ["MORPH"], customer_id, BusinessCategory.COMMUNITY_PHARMACY,
        )

        assert found == [customer, substance, global_limit]

    def test_customer_threshold_with_other_category_is_candidate(
        self, session, create_threshold,
    ):
        customer_id = uuid4()
        threshold = create_threshold(
            customer_id=customer_id, customer_category=BusinessCategory.VETERINARIAN,
        )

        found = ThresholdSelector(session).get_applicable(
            ["MORPH"], customer_id, BusinessCategory.COMMUNITY_PHARMACY,
        )

        assert found == [threshold]

    def test_by_type(self, session, create_threshold):
        frequency = create_threshold(
            name="Orders", threshold_type=ThresholdType.FREQUENCY, limit_value=Decimal("5"),
        )
        create_threshold(name="Quantity")

        assert ThresholdSelector(session).get_by_type(ThresholdType.FREQUENCY) == [frequency]
