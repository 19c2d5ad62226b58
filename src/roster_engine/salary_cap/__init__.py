"""
Salary Cap

Cap ledger (available space per team), exemption rules and compliance
reporting.
"""

from .cap_ledger import CapLedger
from .cap_validator import CapValidator
from .exemption_manager import ExemptionManager

__all__ = [
    'CapLedger',
    'CapValidator',
    'ExemptionManager',
]
