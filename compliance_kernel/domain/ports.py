"""
Ports -- Collaborator contracts consumed by the validation engine.

Responsibility:
    Narrow Protocol interfaces for every external collaborator the
    orchestrator and the override workflow talk to.  SQLAlchemy-backed
    implementations live in compliance_kernel.selectors and
    compliance_kernel.services; tests may substitute in-memory fakes.

Architecture position:
    Kernel > Domain -- pure interfaces, zero I/O.

Invariants enforced:
    - Optional capabilities (webhooks, usage locking) are modelled as
      explicit interfaces with no-op implementations, never as None.
    - ``TransactionStore.get_in_period`` returns only transactions that may
      proceed (validation passed or override approved).
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from compliance_kernel.domain.reference import (
    BusinessCategory,
    ControlledSubstance,
    Customer,
    HolderType,
    Licence,
    Threshold,
    ThresholdType,
)
from compliance_kernel.domain.transaction import (
    Transaction,
    TransactionLicenceUsage,
    TransactionViolation,
    ValidationStatus,
)
from compliance_kernel.domain.webhooks import WebhookEventType


class TransactionStore(Protocol):
    """Read/write access to transactions and their validation artifacts."""

    def get(self, transaction_id: UUID) -> Transaction | None: ...

    def get_by_external_id(self, external_id: str) -> Transaction | None: ...

    def create(self, transaction: Transaction) -> None: ...

    def update(self, transaction: Transaction) -> None: ...

    def get_in_period(
        self,
        customer_account: str,
        data_area_id: str,
        substance_code: str | None,
        from_date: datetime,
        to_date: datetime,
        exclude_transaction_id: UUID | None = None,
    ) -> list[Transaction]: ...

    def get_substance_usage(
        self,
        customer_account: str,
        data_area_id: str,
        substance_code: str,
        from_date: datetime,
        to_date: datetime,
        exclude_transaction_id: UUID | None = None,
    ) -> Decimal: ...

    def add_violations(
        self, transaction_id: UUID, violations: Sequence[TransactionViolation],
    ) -> None: ...

    def clear_violations(self, transaction_id: UUID) -> None: ...

    def add_licence_usage(self, usage: TransactionLicenceUsage) -> None: ...

    def clear_licence_usages(self, transaction_id: UUID) -> None: ...

    def get_pending_overrides(self) -> list[Transaction]: ...

    def get_pending_override_count(self) -> int: ...

    def list_transactions(
        self,
        status: ValidationStatus | None = None,
        customer_account: str | None = None,
        data_area_id: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> list[Transaction]: ...


class ThresholdStore(Protocol):
    def get_applicable(
        self,
        substance_codes: Sequence[str],
        customer_id: UUID,
        customer_category: BusinessCategory,
    ) -> list[Threshold]: ...

    def get_by_type(self, threshold_type: ThresholdType) -> list[Threshold]: ...


class LicenceStore(Protocol):
    def get_by_holder(
        self, holder_id: UUID, holder_type: HolderType,
    ) -> list[Licence]: ...


class CustomerStore(Protocol):
    def get_by_account(
        self, customer_account: str, data_area_id: str,
    ) -> Customer | None: ...


class SubstanceRegistry(Protocol):
    def get_by_substance_code(self, substance_code: str) -> ControlledSubstance | None: ...


class ProductRegistry(Protocol):
    def resolve_substance_code(
        self, item_number: str, data_area_id: str,
    ) -> str | None: ...


class WebhookNotifier(Protocol):
    def dispatch(self, event_type: WebhookEventType, payload: Any) -> None: ...


class NullWebhookNotifier:
    """Notifier used when no webhook subscribers are configured."""

    def dispatch(self, event_type: WebhookEventType, payload: Any) -> None:
        return None


class UsageLock(Protocol):
    """Serialisation point around the read-aggregate-compare threshold step."""

    def hold(self, customer_account: str, data_area_id: str) -> Any: ...


class NullUsageLock:
    """No serialisation: concurrent validations may read stale usage totals."""

    @contextmanager
    def hold(self, customer_account: str, data_area_id: str) -> Iterator[None]:
        yield
