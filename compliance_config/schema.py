"""
Configuration schema (``compliance_config.schema``).

Frozen dataclasses describing the parsed settings document.  Kernel value
types (LicenceTypeIds, OverrideApprovalSettings) are reused directly so the
settings can be handed to services without translation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from compliance_kernel.domain.override import OverrideApprovalSettings
from compliance_kernel.domain.reference import COMPANY_HOLDER_ID, LicenceTypeIds


@dataclass(frozen=True)
class ComplianceSettings:
    company_holder_id: UUID = COMPANY_HOLDER_ID
    licence_type_ids: LicenceTypeIds = field(default_factory=LicenceTypeIds)
    override_approval: OverrideApprovalSettings = field(
        default_factory=OverrideApprovalSettings,
    )
    usage_lock_strategy: str = "none"
    usage_lock_timeout_seconds: float = 10.0
    checksum: str = ""
