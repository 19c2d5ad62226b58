"""
Pytest configuration for the roster engine tests.

Provides fixtures for testing including:
- Temporary database per test
- Controllable clock for deadlines
- Engine components wired to one store
- Teams, players and signing helpers
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


project_root = Path(__file__).parent.parent
src_path = project_root / "src"

if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from roster_engine.config.engine_settings import EngineSettings  # noqa: E402
from roster_engine.engine import RosterEngine  # noqa: E402
from roster_engine.models.entities import Actor  # noqa: E402


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def test_db_path():
    """
    Create temporary database path for testing.

    Yields:
        Path to temporary database file

    Cleanup:
        Removes database and WAL side files after test
    """
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    os.unlink(path)

    yield path

    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(path + suffix):
            os.unlink(path + suffix)


@pytest.fixture
def settings():
    """Default league rules with on-write cap verification."""
    return EngineSettings()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc))


# ============================================================================
# ENGINE FIXTURES
# ============================================================================

@pytest.fixture
def engine(test_db_path, settings, clock):
    return RosterEngine(test_db_path, settings=settings, clock=clock)


@pytest.fixture
def db(engine):
    return engine.db


@pytest.fixture
def ledger(engine):
    return engine.ledger


@pytest.fixture
def status_machine(engine):
    return engine.status_machine


@pytest.fixture
def exemptions(engine):
    return engine.exemptions


@pytest.fixture
def contracts(engine):
    return engine.contracts


@pytest.fixture
def trades(engine):
    return engine.trades


@pytest.fixture
def waivers(engine):
    return engine.waivers


@pytest.fixture
def validator(engine):
    return engine.validator


# ============================================================================
# LEAGUE FIXTURES
# ============================================================================

@pytest.fixture
def team_x(engine):
    """Ceiling 1,000,000, floor 300,000."""
    return engine.create_team("Team X", cap_ceiling=1_000_000, cap_floor=300_000)


@pytest.fixture
def team_y(engine):
    """Ceiling 1,000,000, no floor."""
    return engine.create_team("Team Y", cap_ceiling=1_000_000, cap_floor=0)


@pytest.fixture
def make_player(engine):
    """Factory: make_player("name") registers a free agent."""
    def _make(name: str):
        return engine.register_player(f"ext-{name}", name)
    return _make


@pytest.fixture
def sign_player(engine, make_player):
    """
    Factory: sign_player("name", team_id, salary) registers a player, offers
    and accepts. Returns (player, contract).
    """
    def _sign(name: str, team_id: int, salary: int, term_days: int = 210):
        player = make_player(name)
        offer = engine.contracts.offer(player.player_id, team_id, salary, term_days)
        contract = engine.contracts.accept(offer.contract_id)
        return engine.get_player(player.player_id), contract
    return _sign


@pytest.fixture
def agent_x(team_x):
    return Actor.team_agent("gm-x", team_x.team_id)


@pytest.fixture
def agent_y(team_y):
    return Actor.team_agent("gm-y", team_y.team_id)


@pytest.fixture
def admin():
    return Actor.league_admin("commissioner")
