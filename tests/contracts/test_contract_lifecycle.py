"""
Unit Tests for ContractManager

Tests the contract lifecycle:
- Offers (custom and entry-level) and their preconditions
- Acceptance: activation, player signing, cap debit, waiver closing
- Rejection, withdrawal, expiry and the stale-offer sweep
- Termination without side effects
"""

from datetime import timedelta

import pytest

from roster_engine.config.engine_settings import EngineSettings
from roster_engine.engine import RosterEngine
from roster_engine.errors import (
    ContractNotFound,
    InsufficientCap,
    InvalidStateTransition,
    OfferExpired,
    PlayerAlreadyUnderContract,
    PlayerNotFound,
    TeamNotFound,
    Timeout,
    Unauthorized,
)
from roster_engine.models.entities import Actor
from roster_engine.models.enums import ContractStatus, PlayerStatus, TransactionType, WaiverStatus


class TestOffer:

    def test_offer_creates_pending_contract(self, contracts, clock, team_x, make_player):
        player = make_player("a")

        offer = contracts.offer(player.player_id, team_x.team_id, 900_000, 210, originating_message_ref="msg-1")

        assert offer.status == ContractStatus.PENDING
        assert offer.salary == 900_000
        assert offer.start_date == clock()
        assert offer.end_date == clock() + timedelta(days=210)
        assert offer.offer_expires_at == clock() + timedelta(hours=24)
        assert offer.originating_message_ref == "msg-1"

    def test_entry_level_offer(self, contracts, team_x, make_player):
        player = make_player("rookie")

        offer = contracts.offer_entry_level(player.player_id, team_x.team_id)

        assert (offer.salary, offer.term_days) == (925_000, 210)

    def test_offer_over_cap_rejected(self, contracts, team_x, make_player):
        player = make_player("a")
        with pytest.raises(InsufficientCap):
            contracts.offer(player.player_id, team_x.team_id, 1_500_000, 210)

    def test_second_open_offer_rejected(self, contracts, team_x, team_y, make_player):
        player = make_player("a")
        first = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)

        with pytest.raises(PlayerAlreadyUnderContract) as exc_info:
            contracts.offer(player.player_id, team_y.team_id, 200_000, 210)

        assert exc_info.value.context["contract_id"] == first.contract_id

    def test_signed_player_cannot_be_offered(self, contracts, team_x, team_y, sign_player):
        player, _ = sign_player("a", team_x.team_id, 100_000)
        with pytest.raises(PlayerAlreadyUnderContract):
            contracts.offer(player.player_id, team_y.team_id, 100_000, 210)

    def test_unknown_team_and_player(self, contracts, team_x, make_player):
        player = make_player("a")
        with pytest.raises(TeamNotFound):
            contracts.offer(player.player_id, 999, 100_000, 210)
        with pytest.raises(PlayerNotFound):
            contracts.offer(999, team_x.team_id, 100_000, 210)

    @pytest.mark.parametrize("salary,term_days", [(0, 210), (-5, 210), (100_000, 0)])
    def test_invalid_terms(self, contracts, team_x, make_player, salary, term_days):
        player = make_player("a")
        with pytest.raises(ValueError):
            contracts.offer(player.player_id, team_x.team_id, salary, term_days)


class TestAccept:

    def test_accept_signs_player_and_debits_cap(self, engine, contracts, team_x, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 900_000, 210)

        accepted = contracts.accept(offer.contract_id)

        assert accepted.status == ContractStatus.ACTIVE
        signed = engine.get_player(player.player_id)
        assert signed.status == PlayerStatus.SIGNED
        assert signed.current_team_id == team_x.team_id
        assert not signed.is_exempt
        assert engine.ledger.available_cap(team_x.team_id) == 100_000
        assert engine.get_team(team_x.team_id).available_cap == 100_000

        log = engine.transaction_log(team_x.team_id)
        assert [(t.transaction_type, t.cap_impact) for t in log] == [(TransactionType.SIGNING, -900_000)]

    def test_accept_twice_is_invalid(self, contracts, team_x, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)
        contracts.accept(offer.contract_id)

        with pytest.raises(InvalidStateTransition):
            contracts.accept(offer.contract_id)

    def test_expired_offer_cannot_be_accepted(self, engine, contracts, clock, team_x, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)
        clock.advance(hours=24)

        with pytest.raises(OfferExpired) as exc_info:
            contracts.accept(offer.contract_id)

        assert isinstance(exc_info.value, Timeout)
        assert contracts.get_contract(offer.contract_id).status == ContractStatus.PENDING
        assert engine.get_player(player.player_id).status == PlayerStatus.FREE_AGENT

    def test_cap_rechecked_at_acceptance(self, engine, contracts, team_x, make_player):
        """Two offers that fit alone but not together cannot both activate."""
        a, b = make_player("a"), make_player("b")
        offer_a = contracts.offer(a.player_id, team_x.team_id, 600_000, 210)
        offer_b = contracts.offer(b.player_id, team_x.team_id, 600_000, 210)

        contracts.accept(offer_a.contract_id)
        with pytest.raises(InsufficientCap):
            contracts.accept(offer_b.contract_id)

        assert contracts.get_contract(offer_b.contract_id).status == ContractStatus.PENDING
        assert engine.get_player(b.player_id).status == PlayerStatus.FREE_AGENT
        assert engine.ledger.available_cap(team_x.team_id) == 400_000

    def test_only_player_or_admin_answers(self, contracts, team_x, agent_x, admin, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)

        with pytest.raises(Unauthorized):
            contracts.accept(offer.contract_id, actor=agent_x)

        accepted = contracts.accept(offer.contract_id, actor=Actor(actor_id=player.external_id))
        assert accepted.status == ContractStatus.ACTIVE

    def test_accept_from_waivers_closes_waiver(self, engine, contracts, team_x, team_y, sign_player):
        player, _ = sign_player("a", team_x.team_id, 300_000)
        waiver = engine.waivers.release(player.player_id)

        offer = contracts.offer(player.player_id, team_y.team_id, 250_000, 100)
        contracts.accept(offer.contract_id)

        closed = engine.waivers.get_waiver(waiver.waiver_id)
        assert closed.status == WaiverStatus.CLAIMED
        assert closed.claimed_by_team_id == team_y.team_id
        assert engine.get_player(player.player_id).current_team_id == team_y.team_id

    def test_accept_after_waiver_window_clears_waiver(self, engine, contracts, clock, team_x, team_y, sign_player):
        """Window over but not yet swept: the waiver clears, it is not claimed."""
        player, _ = sign_player("a", team_x.team_id, 300_000)
        waiver = engine.waivers.release(player.player_id)
        clock.advance(hours=49)

        offer = contracts.offer(player.player_id, team_y.team_id, 250_000, 100)
        contracts.accept(offer.contract_id)

        closed = engine.waivers.get_waiver(waiver.waiver_id)
        assert closed.status == WaiverStatus.CLEARED
        assert closed.claimed_by_team_id is None
        assert engine.get_player(player.player_id).current_team_id == team_y.team_id
        assert engine.waivers.sweep_expired() == []

    def test_unknown_contract(self, contracts):
        with pytest.raises(ContractNotFound):
            contracts.accept(31337)


class TestRejectExpireWithdraw:

    def test_reject_leaves_roster_and_cap(self, engine, contracts, team_x, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)

        rejected = contracts.reject(offer.contract_id)

        assert rejected.status == ContractStatus.REJECTED
        assert engine.get_player(player.player_id).status == PlayerStatus.FREE_AGENT
        assert engine.ledger.available_cap(team_x.team_id) == 1_000_000

    def test_expire(self, contracts, team_x, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)

        assert contracts.expire(offer.contract_id).status == ContractStatus.EXPIRED
        with pytest.raises(InvalidStateTransition):
            contracts.reject(offer.contract_id)

    def test_withdraw_by_offering_team(self, contracts, team_x, agent_x, agent_y, make_player):
        player = make_player("a")
        offer = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)

        with pytest.raises(Unauthorized):
            contracts.withdraw(offer.contract_id, actor=agent_y)

        assert contracts.withdraw(offer.contract_id, actor=agent_x).status == ContractStatus.DECLINED

    def test_closed_offer_allows_new_offer(self, contracts, team_x, team_y, make_player):
        player = make_player("a")
        first = contracts.offer(player.player_id, team_x.team_id, 100_000, 210)
        contracts.reject(first.contract_id)

        second = contracts.offer(player.player_id, team_y.team_id, 100_000, 210)
        assert second.status == ContractStatus.PENDING


class TestStaleOfferSweep:

    def test_expires_only_past_deadline(self, contracts, clock, team_x, make_player):
        old = contracts.offer(make_player("old").player_id, team_x.team_id, 100_000, 210)
        clock.advance(hours=12)
        fresh = contracts.offer(make_player("fresh").player_id, team_x.team_id, 100_000, 210)
        clock.advance(hours=12)

        assert contracts.expire_stale_offers() == [old.contract_id]
        assert contracts.get_contract(old.contract_id).status == ContractStatus.EXPIRED
        assert contracts.get_contract(fresh.contract_id).status == ContractStatus.PENDING

    def test_sweep_is_idempotent(self, contracts, clock, team_x, make_player):
        contracts.offer(make_player("a").player_id, team_x.team_id, 100_000, 210)
        now = clock.advance(days=2)

        assert len(contracts.expire_stale_offers(now)) == 1
        assert contracts.expire_stale_offers(now) == []

    def test_accepted_offer_not_swept(self, contracts, clock, team_x, make_player):
        offer = contracts.offer(make_player("a").player_id, team_x.team_id, 100_000, 210)
        contracts.accept(offer.contract_id)
        clock.advance(days=2)

        assert contracts.expire_stale_offers() == []


class TestTerminate:

    def test_terminate_touches_only_contract(self, engine, contracts, team_x, sign_player):
        player, contract = sign_player("a", team_x.team_id, 400_000)

        terminated = contracts.terminate(contract.contract_id)

        assert terminated.status == ContractStatus.TERMINATED
        assert engine.get_player(player.player_id).status == PlayerStatus.SIGNED
        assert engine.get_player(player.player_id).current_team_id == team_x.team_id
        assert engine.get_team(team_x.team_id).available_cap == engine.ledger.available_cap(team_x.team_id)
        assert engine.get_team(team_x.team_id).available_cap == 1_000_000

    def test_terminate_refreshes_cache_without_verification(self, engine, test_db_path, clock, team_x, sign_player):
        unchecked = RosterEngine(test_db_path, settings=EngineSettings(VERIFY_CAP_ON_WRITE=False), clock=clock)
        _, contract = sign_player("a", team_x.team_id, 400_000)

        unchecked.contracts.terminate(contract.contract_id)

        assert unchecked.get_team(team_x.team_id).available_cap == 1_000_000
        assert unchecked.ledger.reconcile() == {}

    def test_terminate_pending_is_invalid(self, contracts, team_x, make_player):
        offer = contracts.offer(make_player("a").player_id, team_x.team_id, 100_000, 210)
        with pytest.raises(InvalidStateTransition):
            contracts.terminate(offer.contract_id)
