"""
Typed Exception Hierarchy for the Compliance Kernel.

===============================================================================
FAULTS VERSUS OUTCOMES
===============================================================================

The validation engine distinguishes two kinds of failure:

  1. Business-rule outcomes -- a suspended customer, an expired licence, a
     threshold breach, a missing justification on an override.  These are
     NEVER raised.  They are returned as violations on a ValidationOutcome or
     as a failed OverrideResult carrying a stable error code.

  2. Faults -- an unknown transaction id passed to revalidation, a malformed
     settings file, a usage lock that cannot be acquired, a database error.
     These are raised and propagate to the caller uncaught.

Every exception defined here carries a class-level ``code`` (machine
readable, API safe) and stores its context as attributes so that the
structured log formatter can emit it without parsing the message.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ComplianceKernelError (base)
    |
    +-- TransactionError
    |   +-- TransactionNotFoundError
    |
    +-- OverrideError
    |   +-- InvalidOverrideTransitionError
    |
    +-- ConfigurationError
    |
    +-- ConcurrencyError
        +-- UsageLockTimeoutError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------
Transaction     | TRANSACTION_NOT_FOUND         | Revalidation of an unknown id
----------------|-------------------------------|---------------------------------
Override        | INVALID_OVERRIDE_TRANSITION   | Transition not in the table
----------------|-------------------------------|---------------------------------
Configuration   | CONFIGURATION_ERROR           | Settings file missing keys
----------------|-------------------------------|---------------------------------
Concurrency     | USAGE_LOCK_TIMEOUT            | Usage lock not acquired in time
"""


class ComplianceKernelError(Exception):
    """
    Base exception for all compliance kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COMPLIANCE_KERNEL_ERROR"


# Transaction-related exceptions


class TransactionError(ComplianceKernelError):
    """Base exception for transaction-related errors."""

    code: str = "TRANSACTION_ERROR"


class TransactionNotFoundError(TransactionError):
    """Transaction with given ID was not found."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


# Override-related exceptions


class OverrideError(ComplianceKernelError):
    """Base exception for override workflow errors."""

    code: str = "OVERRIDE_ERROR"


class InvalidOverrideTransitionError(OverrideError):
    """Override status change not permitted by the transition table."""

    code: str = "INVALID_OVERRIDE_TRANSITION"

    def __init__(self, transaction_id: str, from_status: str, to_status: str):
        self.transaction_id = transaction_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid override transition for transaction {transaction_id}: "
            f"{from_status} -> {to_status}"
        )


# Configuration exceptions


class ConfigurationError(ComplianceKernelError):
    """Compliance settings could not be parsed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid compliance settings in {source}: {reason}")


# Concurrency exceptions


class ConcurrencyError(ComplianceKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class UsageLockTimeoutError(ConcurrencyError):
    """The per-customer usage lock could not be acquired in time."""

    code: str = "USAGE_LOCK_TIMEOUT"

    def __init__(self, lock_key: str, timeout_seconds: float):
        self.lock_key = lock_key
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Timed out after {timeout_seconds}s waiting for usage lock {lock_key}"
        )
