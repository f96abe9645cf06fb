"""Session-bound services: validation orchestration, override workflow, stores."""

from compliance_kernel.services.base import BaseService
from compliance_kernel.services.override_service import OverrideService
from compliance_kernel.services.transaction_compliance_service import (
    TransactionComplianceService,
)
from compliance_kernel.services.transaction_store import SqlTransactionStore
from compliance_kernel.services.usage_lock import (
    USAGE_LOCK_STRATEGIES,
    CustomerUsageLock,
    build_usage_lock,
)

__all__ = [
    "BaseService",
    "CustomerUsageLock",
    "OverrideService",
    "SqlTransactionStore",
    "TransactionComplianceService",
    "USAGE_LOCK_STRATEGIES",
    "build_usage_lock",
]
