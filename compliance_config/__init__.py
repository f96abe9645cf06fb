"""
compliance_config -- single public entrypoint for compliance settings.

Responsibility:
    Provides the way to obtain runtime settings through
    ``get_compliance_settings()``: the company licence holder, the
    licence-type identities that drive substance coverage and permit checks,
    the override approval rules and the usage lock strategy.

Architecture position:
    Configuration -- YAML-driven settings.  This package sits above
    ``compliance_kernel``; the kernel MUST NEVER import from
    ``compliance_config``.  Callers pass the parsed values into the
    services, and ``usage_lock_for()`` builds the configured lock.

Invariants enforced:
    - Every successful ``get_compliance_settings()`` call emits a
      ``COMPLIANCE_CONFIG_TRACE`` log entry with the source path and the
      checksum of the parsed document.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``yaml.YAMLError`` -- the settings file is not valid YAML.
    - ``ConfigurationError`` -- required keys missing or values malformed.
"""

from __future__ import annotations

from pathlib import Path

from compliance_config.loader import load_yaml_file, parse_settings
from compliance_config.schema import ComplianceSettings
from compliance_kernel.domain.ports import UsageLock
from compliance_kernel.logging_config import get_logger
from compliance_kernel.services.usage_lock import build_usage_lock

_logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_compliance_settings(path: Path | str | None = None) -> ComplianceSettings:
    """Load and parse the settings document at ``path`` (defaults.yaml if omitted)."""
    source = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_settings(load_yaml_file(source), str(source))

    _logger.info(
        "COMPLIANCE_CONFIG_TRACE",
        extra={
            "trace_type": "COMPLIANCE_CONFIG_TRACE",
            "source": str(source),
            "checksum": settings.checksum,
            "company_holder_id": str(settings.company_holder_id),
            "usage_lock_strategy": settings.usage_lock_strategy,
            "authorized_roles": list(settings.override_approval.authorized_roles),
        },
    )
    return settings


def usage_lock_for(settings: ComplianceSettings) -> UsageLock:
    return build_usage_lock(
        settings.usage_lock_strategy, settings.usage_lock_timeout_seconds,
    )


__all__ = [
    "ComplianceSettings",
    "DEFAULT_SETTINGS_PATH",
    "get_compliance_settings",
    "usage_lock_for",
]
