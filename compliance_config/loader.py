"""
Configuration Loader (``compliance_config.loader``).

Responsibility
--------------
Loads the YAML settings document and parses it into the frozen
``ComplianceSettings`` dataclass.  The single public entry point for runtime
settings is ``compliance_config.get_compliance_settings()``.

Invariants enforced
-------------------
* Required sections and keys must be present; no silent defaults for them.
* UUID values must parse; the usage lock strategy must be a known name.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys, bad UUIDs, bad numbers or unknown strategy  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from compliance_config.schema import ComplianceSettings
from compliance_kernel.domain.override import OverrideApprovalSettings
from compliance_kernel.domain.reference import LicenceTypeIds
from compliance_kernel.exceptions import ConfigurationError
from compliance_kernel.services.usage_lock import USAGE_LOCK_STRATEGIES

_LICENCE_TYPE_KEYS = (
    "wholesale",
    "opium_exemption",
    "import_permit",
    "export_permit",
    "pharmacy",
    "precursor_registration",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _require(data: dict[str, Any], key: str, source: str, section: str = "") -> Any:
    if not isinstance(data, dict) or key not in data:
        where = f"{section}.{key}" if section else key
        raise ConfigurationError(source, f"missing required key '{where}'")
    return data[key]


def parse_uuid(value: Any, source: str, key: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ConfigurationError(source, f"'{key}' is not a valid UUID: {value!r}") from None


def parse_licence_type_ids(data: dict[str, Any], source: str) -> LicenceTypeIds:
    return LicenceTypeIds(**{
        key: parse_uuid(
            _require(data, key, source, "licence_type_ids"),
            source,
            f"licence_type_ids.{key}",
        )
        for key in _LICENCE_TYPE_KEYS
    })


def parse_override_approval(data: dict[str, Any], source: str) -> OverrideApprovalSettings:
    roles = data.get("authorized_roles") or []
    if not isinstance(roles, list):
        raise ConfigurationError(source, "'override_approval.authorized_roles' must be a list")
    try:
        min_length = int(data.get("min_justification_length", 0))
    except (TypeError, ValueError):
        raise ConfigurationError(
            source, "'override_approval.min_justification_length' must be an integer",
        ) from None
    return OverrideApprovalSettings(
        authorized_roles=tuple(str(role) for role in roles),
        require_justification=bool(data.get("require_justification", True)),
        min_justification_length=min_length,
        notify_on_approval=bool(data.get("notify_on_approval", True)),
        notify_on_rejection=bool(data.get("notify_on_rejection", True)),
    )


def parse_settings(data: dict[str, Any], source: str) -> ComplianceSettings:
    """Parse a settings document into ComplianceSettings."""
    usage_lock = data.get("usage_lock") or {}
    strategy = str(usage_lock.get("strategy", "none"))
    if strategy not in USAGE_LOCK_STRATEGIES:
        raise ConfigurationError(
            source,
            f"unknown usage_lock.strategy {strategy!r}; "
            f"expected one of {', '.join(USAGE_LOCK_STRATEGIES)}",
        )
    try:
        timeout = float(usage_lock.get("timeout_seconds", 10))
    except (TypeError, ValueError):
        raise ConfigurationError(source, "'usage_lock.timeout_seconds' must be a number") from None

    return ComplianceSettings(
        company_holder_id=parse_uuid(
            _require(data, "company_holder_id", source), source, "company_holder_id",
        ),
        licence_type_ids=parse_licence_type_ids(
            _require(data, "licence_type_ids", source), source,
        ),
        override_approval=parse_override_approval(
            data.get("override_approval") or {}, source,
        ),
        usage_lock_strategy=strategy,
        usage_lock_timeout_seconds=timeout,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
