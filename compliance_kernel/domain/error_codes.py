"""
Stable violation and result codes.

These strings are part of the external contract: API layers and UIs key
user-facing messages off them, so they never change once published.
"""

# Customer qualification
CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
CUSTOMER_SUSPENDED = "CUSTOMER_SUSPENDED"
CUSTOMER_NOT_APPROVED = "CUSTOMER_NOT_APPROVED"
GDP_QUALIFICATION_INVALID = "GDP_QUALIFICATION_INVALID"

# Licence coverage
SUBSTANCE_NOT_FOUND = "SUBSTANCE_NOT_FOUND"
LICENCE_MISSING = "LICENCE_MISSING"
LICENCE_EXPIRED = "LICENCE_EXPIRED"
LICENCE_SUSPENDED = "LICENCE_SUSPENDED"

# Thresholds
QUANTITY_THRESHOLD_EXCEEDED = "QUANTITY_THRESHOLD_EXCEEDED"
FREQUENCY_THRESHOLD_EXCEEDED = "FREQUENCY_THRESHOLD_EXCEEDED"
VALIDATION_WARNING = "VALIDATION_WARNING"

# Cross-border
IMPORT_PERMIT_REQUIRED = "IMPORT_PERMIT_REQUIRED"
EXPORT_PERMIT_REQUIRED = "EXPORT_PERMIT_REQUIRED"

# Override workflow results
TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
