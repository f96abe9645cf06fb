"""
Compliance Kernel

Transaction compliance validation for controlled-substance wholesale trade:
- Customer qualification checks
- Licence-to-substance coverage matching
- Period-windowed quantity and frequency thresholds
- Cross-border permit checks
- Override approval workflow
"""

__version__ = "0.1.0"
