"""
Contract lifecycle: offers, acceptance, expiry and termination.
"""

from .contract_manager import ContractManager
from .contract_templates import ContractTemplate, entry_level

__all__ = [
    'ContractManager',
    'ContractTemplate',
    'entry_level',
]
