"""
Tests for TradeCoordinator

Two-phase trades: proposal by team A, answer by team B, review by a
league administrator. Only approval moves players, and it either applies
every change or none.
"""

import pytest

from roster_engine.errors import (
    ExemptionLimitReached,
    InsufficientCap,
    InvalidStateTransition,
    StalePrecondition,
    TeamNotFound,
    Timeout,
    TradeProposalNotFound,
    Unauthorized,
)
from roster_engine.models.entities import Actor
from roster_engine.models.enums import ContractStatus, PlayerStatus, TradeStatus, TransactionType


def _snapshot(engine, team_ids, player_ids):
    """Every field a failed approval must leave untouched."""
    return (
        [engine.get_team(t).to_dict() for t in team_ids],
        [engine.get_player(p).to_dict() for p in player_ids],
        [engine.contracts.find_active_contract(p) for p in player_ids],
    )


class TestPropose:

    def test_propose_creates_pending(self, trades, clock, team_x, team_y, agent_x, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 500_000)

        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id], note="for depth")

        assert proposal.status == TradeStatus.PENDING
        assert proposal.player_ids == [player.player_id]
        assert proposal.moves[0].from_team_id == team_x.team_id
        assert proposal.moves[0].to_team_id == team_y.team_id
        assert proposal.proposed_by == "gm-x"
        assert proposal.note == "for depth"
        assert proposal.response_deadline > clock()

    def test_only_from_team_agent_may_propose(self, trades, team_x, team_y, agent_y, admin, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        for actor in (agent_y, admin):
            with pytest.raises(Unauthorized):
                trades.propose(actor, team_x.team_id, team_y.team_id, [player.player_id])

    def test_player_not_on_proposing_team(self, trades, team_x, team_y, agent_x, sign_player):
        player, _ = sign_player("p1", team_y.team_id, 100_000)
        with pytest.raises(StalePrecondition):
            trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])

    def test_free_agent_cannot_be_traded(self, trades, team_x, team_y, agent_x, make_player):
        player = make_player("fa")
        with pytest.raises(StalePrecondition):
            trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])

    def test_receiving_team_cap_checked(self, trades, team_x, team_y, agent_x, sign_player):
        sign_player("y1", team_y.team_id, 700_000)
        player, _ = sign_player("p1", team_x.team_id, 500_000)

        with pytest.raises(InsufficientCap) as exc_info:
            trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        assert exc_info.value.context["team_id"] == team_y.team_id

    def test_return_players_offset_cap(self, trades, team_x, team_y, agent_x, sign_player):
        sign_player("y1", team_y.team_id, 300_000)
        back, _ = sign_player("y2", team_y.team_id, 400_000)
        player, _ = sign_player("p1", team_x.team_id, 500_000)

        proposal = trades.propose(
            agent_x, team_x.team_id, team_y.team_id, [player.player_id], return_player_ids=[back.player_id]
        )
        assert sorted(proposal.player_ids) == sorted([player.player_id, back.player_id])

    def test_exempt_player_moves_without_cap_hit(self, engine, trades, team_x, team_y, agent_x, sign_player):
        sign_player("y1", team_y.team_id, 900_000)
        player, _ = sign_player("p1", team_x.team_id, 500_000)
        engine.exemptions.set_exempt(player.player_id, True)

        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        assert proposal.status == TradeStatus.PENDING

    def test_exempt_limit_checked(self, engine, trades, team_x, team_y, agent_x, sign_player):
        for name in ("y1", "y2"):
            p, _ = sign_player(name, team_y.team_id, 100_000)
            engine.exemptions.set_exempt(p.player_id, True)
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        engine.exemptions.set_exempt(player.player_id, True)

        with pytest.raises(ExemptionLimitReached):
            trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])

    def test_argument_validation(self, trades, team_x, agent_x, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        with pytest.raises(ValueError):
            trades.propose(agent_x, team_x.team_id, team_x.team_id, [player.player_id])
        with pytest.raises(ValueError):
            trades.propose(agent_x, team_x.team_id, 2, [])
        with pytest.raises(ValueError):
            trades.propose(agent_x, team_x.team_id, 2, [player.player_id], return_player_ids=[player.player_id])

    def test_unknown_receiving_team(self, trades, team_x, agent_x, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        with pytest.raises(TeamNotFound):
            trades.propose(agent_x, team_x.team_id, 999, [player.player_id])


class TestResponse:

    @pytest.fixture
    def proposal(self, trades, team_x, team_y, agent_x, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 500_000)
        return trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])

    def test_accept_forwards_to_review(self, trades, clock, agent_y, proposal):
        accepted = trades.accept(agent_y, proposal.proposal_id)

        assert accepted.status == TradeStatus.ACCEPTED
        assert accepted.responded_by == "gm-y"
        assert accepted.review_deadline > clock()

    def test_reject_is_terminal(self, trades, agent_y, admin, proposal):
        assert trades.reject(agent_y, proposal.proposal_id).status == TradeStatus.REJECTED
        with pytest.raises(InvalidStateTransition):
            trades.admin_approve(admin, proposal.proposal_id)

    def test_only_receiving_team_answers(self, trades, agent_x, admin, proposal):
        for actor in (agent_x, admin):
            with pytest.raises(Unauthorized):
                trades.accept(actor, proposal.proposal_id)

    def test_response_after_deadline_times_out(self, trades, clock, agent_y, proposal):
        clock.advance(hours=25)

        with pytest.raises(Timeout):
            trades.accept(agent_y, proposal.proposal_id)

        assert trades.get_proposal(proposal.proposal_id).status == TradeStatus.PENDING

    def test_double_accept_invalid(self, trades, agent_y, proposal):
        trades.accept(agent_y, proposal.proposal_id)
        with pytest.raises(InvalidStateTransition):
            trades.accept(agent_y, proposal.proposal_id)

    def test_unknown_proposal(self, trades, agent_y):
        with pytest.raises(TradeProposalNotFound):
            trades.accept(agent_y, 4242)


class TestAdminReview:

    def test_scenario_c_one_way_trade(self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player):
        """X sends P1 (500,000) to Y which has 600,000 available."""
        sign_player("y1", team_y.team_id, 400_000)
        player, contract = sign_player("p1", team_x.team_id, 500_000)
        x_before = engine.ledger.available_cap(team_x.team_id)

        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.accept(agent_y, proposal.proposal_id)
        approved = trades.admin_approve(admin, proposal.proposal_id, note="ok")

        assert approved.status == TradeStatus.ADMIN_APPROVED
        assert approved.reviewed_by == "commissioner"
        moved = engine.get_player(player.player_id)
        assert moved.status == PlayerStatus.SIGNED
        assert moved.current_team_id == team_y.team_id
        active = engine.contracts.find_active_contract(player.player_id)
        assert active.contract_id == contract.contract_id
        assert active.team_id == team_y.team_id
        assert engine.ledger.available_cap(team_x.team_id) == x_before + 500_000
        assert engine.ledger.available_cap(team_y.team_id) == 100_000
        assert engine.get_team(team_y.team_id).available_cap == 100_000

        trade_rows = engine.transaction_log(transaction_type=TransactionType.TRADE)
        assert sorted((t.team_id, t.cap_impact) for t in trade_rows) == sorted(
            [(team_x.team_id, 500_000), (team_y.team_id, -500_000)]
        )

    def test_two_way_trade(self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player):
        p1, _ = sign_player("p1", team_x.team_id, 500_000)
        p2, _ = sign_player("p2", team_y.team_id, 200_000)

        proposal = trades.propose(
            agent_x, team_x.team_id, team_y.team_id, [p1.player_id], return_player_ids=[p2.player_id]
        )
        trades.accept(agent_y, proposal.proposal_id)
        trades.admin_approve(admin, proposal.proposal_id)

        assert engine.get_player(p1.player_id).current_team_id == team_y.team_id
        assert engine.get_player(p2.player_id).current_team_id == team_x.team_id
        assert engine.ledger.available_cap(team_x.team_id) == 800_000
        assert engine.ledger.available_cap(team_y.team_id) == 500_000

    def test_admin_reject(self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 500_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.accept(agent_y, proposal.proposal_id)

        vetoed = trades.admin_reject(admin, proposal.proposal_id, note="lopsided")

        assert vetoed.status == TradeStatus.ADMIN_REJECTED
        assert vetoed.admin_note == "lopsided"
        assert engine.get_player(player.player_id).current_team_id == team_x.team_id

    def test_pending_proposal_not_reviewable(self, trades, team_x, team_y, agent_x, admin, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        with pytest.raises(InvalidStateTransition):
            trades.admin_approve(admin, proposal.proposal_id)

    def test_non_admin_and_involved_admin_unauthorized(self, trades, team_x, team_y, agent_x, agent_y, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.accept(agent_y, proposal.proposal_id)

        involved_admin = Actor(actor_id="owner-admin", team_id=team_y.team_id, is_admin=True)
        for actor in (agent_y, involved_admin):
            with pytest.raises(Unauthorized):
                trades.admin_approve(actor, proposal.proposal_id)

        assert trades.get_proposal(proposal.proposal_id).status == TradeStatus.ACCEPTED

    def test_review_after_deadline_times_out(self, trades, clock, team_x, team_y, agent_x, agent_y, admin, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.accept(agent_y, proposal.proposal_id)
        clock.advance(hours=24)

        with pytest.raises(Timeout):
            trades.admin_approve(admin, proposal.proposal_id)
        assert trades.get_proposal(proposal.proposal_id).status == TradeStatus.ACCEPTED


class TestApprovalAtomicity:
    """A failed approval leaves every touched entity at its pre-state."""

    def test_cap_drift_between_proposal_and_approval(
        self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player
    ):
        player, _ = sign_player("p1", team_x.team_id, 500_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.accept(agent_y, proposal.proposal_id)

        # Y spends its space before the admin gets to the trade
        sign_player("y1", team_y.team_id, 600_000)
        before = _snapshot(engine, [team_x.team_id, team_y.team_id], [player.player_id])

        with pytest.raises(InsufficientCap):
            trades.admin_approve(admin, proposal.proposal_id)

        assert _snapshot(engine, [team_x.team_id, team_y.team_id], [player.player_id]) == before
        assert trades.get_proposal(proposal.proposal_id).status == TradeStatus.ACCEPTED

    def test_stale_player_fails_whole_trade(
        self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player
    ):
        p1, _ = sign_player("p1", team_x.team_id, 100_000)
        p2, _ = sign_player("p2", team_x.team_id, 100_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [p1.player_id, p2.player_id])
        trades.accept(agent_y, proposal.proposal_id)

        engine.waivers.release(p2.player_id)
        before = _snapshot(engine, [team_x.team_id, team_y.team_id], [p1.player_id, p2.player_id])

        with pytest.raises(StalePrecondition):
            trades.admin_approve(admin, proposal.proposal_id)

        assert _snapshot(engine, [team_x.team_id, team_y.team_id], [p1.player_id, p2.player_id]) == before
        assert engine.get_player(p1.player_id).current_team_id == team_x.team_id

    def test_player_traded_elsewhere_makes_second_proposal_stale(
        self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player
    ):
        team_z = engine.create_team("Team Z", cap_ceiling=1_000_000)
        agent_z = Actor.team_agent("gm-z", team_z.team_id)
        player, _ = sign_player("p1", team_x.team_id, 100_000)

        to_y = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        to_z = trades.propose(agent_x, team_x.team_id, team_z.team_id, [player.player_id])
        trades.accept(agent_y, to_y.proposal_id)
        trades.accept(agent_z, to_z.proposal_id)
        trades.admin_approve(admin, to_y.proposal_id)

        with pytest.raises(StalePrecondition):
            trades.admin_approve(admin, to_z.proposal_id)
        assert engine.get_player(player.player_id).current_team_id == team_y.team_id

    def test_released_contract_not_repointed(self, engine, trades, team_x, team_y, agent_x, agent_y, admin, sign_player):
        player, contract = sign_player("p1", team_x.team_id, 100_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.accept(agent_y, proposal.proposal_id)
        engine.waivers.release(player.player_id)

        with pytest.raises(StalePrecondition):
            trades.admin_approve(admin, proposal.proposal_id)
        old = engine.contracts.get_contract(contract.contract_id)
        assert old.status == ContractStatus.TERMINATED
        assert old.team_id == team_x.team_id


class TestQueries:

    def test_list_by_team_and_status(self, trades, team_x, team_y, agent_x, agent_y, sign_player):
        p1, _ = sign_player("p1", team_x.team_id, 100_000)
        p2, _ = sign_player("p2", team_x.team_id, 100_000)
        first = trades.propose(agent_x, team_x.team_id, team_y.team_id, [p1.player_id])
        second = trades.propose(agent_x, team_x.team_id, team_y.team_id, [p2.player_id])
        trades.reject(agent_y, first.proposal_id)

        assert [p.proposal_id for p in trades.list_proposals(team_id=team_y.team_id)] == [
            second.proposal_id, first.proposal_id
        ]
        assert [p.proposal_id for p in trades.list_proposals(status="pending")] == [second.proposal_id]
        assert trades.list_proposals(team_id=999) == []

    def test_lapsed_proposals_hidden(self, trades, clock, team_x, team_y, agent_x, agent_y, sign_player):
        p1, _ = sign_player("p1", team_x.team_id, 100_000)
        p2, _ = sign_player("p2", team_x.team_id, 100_000)
        unanswered = trades.propose(agent_x, team_x.team_id, team_y.team_id, [p1.player_id])
        unreviewed = trades.propose(agent_x, team_x.team_id, team_y.team_id, [p2.player_id])
        trades.accept(agent_y, unreviewed.proposal_id)

        clock.advance(hours=24)

        assert trades.list_proposals(status="pending") == []
        assert trades.list_proposals(status="accepted") == []
        lapsed = trades.list_proposals(team_id=team_x.team_id, include_lapsed=True)
        assert [p.proposal_id for p in lapsed] == [unreviewed.proposal_id, unanswered.proposal_id]
        assert all(p.is_lapsed(clock()) for p in lapsed)
        assert trades.get_proposal(unanswered.proposal_id).status == TradeStatus.PENDING

    def test_settled_proposal_never_lapses(self, trades, clock, team_x, team_y, agent_x, agent_y, sign_player):
        player, _ = sign_player("p1", team_x.team_id, 100_000)
        proposal = trades.propose(agent_x, team_x.team_id, team_y.team_id, [player.player_id])
        trades.reject(agent_y, proposal.proposal_id)

        clock.advance(days=5)

        rejected = trades.list_proposals(status="rejected")
        assert [p.proposal_id for p in rejected] == [proposal.proposal_id]
        assert rejected[0].current_deadline is None

    def test_get_unknown(self, trades):
        with pytest.raises(TradeProposalNotFound):
            trades.get_proposal(1)
