"""
Contract Templates

Standard offers the league hands out without negotiation. The entry-level
contract (ELC) is a flat salary over one 30-week season.
"""

from dataclasses import dataclass

from ..config.engine_settings import EngineSettings


@dataclass(frozen=True)
class ContractTemplate:
    """Fixed salary and term for a standard offer."""

    name: str
    salary: int
    term_days: int


def entry_level(settings: EngineSettings) -> ContractTemplate:
    """
    Entry-level contract terms.

    Raises:
        ValueError: If the configured ELC salary or term is not positive
    """
    if settings.ELC_SALARY <= 0 or settings.ELC_TERM_DAYS <= 0:
        raise ValueError(
            f"ELC terms must be positive, got salary={settings.ELC_SALARY!r} "
            f"term_days={settings.ELC_TERM_DAYS!r}"
        )
    return ContractTemplate("ELC", settings.ELC_SALARY, settings.ELC_TERM_DAYS)
