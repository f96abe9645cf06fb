"""
Tests for the cross-border permit engine.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from compliance_engines.cross_border import check_cross_border_permits, holds_usable_permit
from compliance_kernel.domain import error_codes
from compliance_kernel.domain.reference import (
    COMPANY_HOLDER_ID,
    HolderType,
    Licence,
    LicenceStatus,
    LicenceTypeIds,
    PermittedActivity,
)
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionDirection,
    TransactionLine,
    TransactionType,
)

TYPES = LicenceTypeIds()
TX_DATE = datetime(2024, 6, 14, 10, 0, tzinfo=timezone.utc)


def make_permit(
    licence_type_id=TYPES.export_permit,
    status: LicenceStatus = LicenceStatus.VALID,
    expiry_date: date | None = date(2025, 1, 1),
) -> Licence:
    return Licence(
        licence_id=uuid4(),
        licence_number="PERMIT-1",
        holder_id=COMPANY_HOLDER_ID,
        holder_type=HolderType.COMPANY,
        licence_type_id=licence_type_id,
        status=status,
        permitted_activities=PermittedActivity.IMPORT | PermittedActivity.EXPORT,
        expiry_date=expiry_date,
    )


def make_transaction(
    origin: str = "NL",
    destination: str | None = "BE",
    direction: TransactionDirection = TransactionDirection.OUTBOUND,
) -> Transaction:
    return Transaction(
        external_id="SO-1",
        transaction_type=TransactionType.SHIPMENT,
        customer_account="CUST-001",
        customer_data_area_id="nlpd",
        transaction_date=TX_DATE,
        origin_country=origin,
        destination_country=destination,
        direction=direction,
        lines=[TransactionLine(1, "ITEM-1", "nlpd", Decimal("10"), "MORPH")],
    )


def check(transaction, licences):
    return check_cross_border_permits(
        transaction=transaction, company_licences=licences, licence_type_ids=TYPES,
    )


class TestDomesticTransactions:
    def test_blank_destination_is_domestic(self):
        assert check(make_transaction(destination="  "), []) == ()

    def test_same_country_case_insensitive(self):
        assert check(make_transaction(origin="NL", destination="nl"), []) == ()


class TestExportPermit:
    def test_missing_export_permit(self):
        violations = check(make_transaction(), [])

        assert len(violations) == 1
        assert violations[0].error_code == error_codes.EXPORT_PERMIT_REQUIRED
        assert violations[0].can_override is True
        assert violations[0].message == "Export to BE requires valid export permit"

    def test_valid_export_permit_satisfies(self):
        assert check(make_transaction(), [make_permit()]) == ()

    def test_expired_export_permit_does_not_satisfy(self):
        violations = check(make_transaction(), [make_permit(expiry_date=date(2024, 6, 13))])

        assert [v.error_code for v in violations] == [error_codes.EXPORT_PERMIT_REQUIRED]

    def test_suspended_export_permit_does_not_satisfy(self):
        violations = check(make_transaction(), [make_permit(status=LicenceStatus.SUSPENDED)])

        assert [v.error_code for v in violations] == [error_codes.EXPORT_PERMIT_REQUIRED]

    def test_import_permit_does_not_cover_export(self):
        violations = check(make_transaction(), [make_permit(licence_type_id=TYPES.import_permit)])

        assert [v.error_code for v in violations] == [error_codes.EXPORT_PERMIT_REQUIRED]


class TestImportPermit:
    def test_missing_import_permit(self):
        transaction = make_transaction(
            origin="DE", destination="NL", direction=TransactionDirection.INBOUND,
        )

        violations = check(transaction, [])

        assert [v.error_code for v in violations] == [error_codes.IMPORT_PERMIT_REQUIRED]
        assert violations[0].message == "Import from DE requires valid import permit"

    def test_internal_cross_border_needs_no_permit(self):
        transaction = make_transaction(direction=TransactionDirection.INTERNAL)

        assert check(transaction, []) == ()


class TestHoldsUsablePermit:
    def test_expiry_is_inclusive_of_expiry_day(self):
        permit = make_permit(expiry_date=date(2024, 6, 14))

        assert holds_usable_permit([permit], TYPES.export_permit, date(2024, 6, 14)) is True
        assert holds_usable_permit([permit], TYPES.export_permit, date(2024, 6, 15)) is False
