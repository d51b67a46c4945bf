"""
End-to-end scenarios through CasinoService on an in-memory database.

Each test reads back balances and the event log to check that operations
are atomic and fully audited.
"""

import pytest

from casino_ledger.config import CasinoConfig
from casino_ledger.core import fairness
from casino_ledger.core.agents import ConfigUpdate
from casino_ledger.core.errors import (
    AgentPausedError,
    InsufficientBankError,
    InsufficientFundsError,
    InvalidInputError,
    LimitBreachedError,
    NameTakenError,
    NotBrokeError,
    RateLimitedError,
    SelfTipError,
    TargetNotFoundError,
    TooSoonError,
    UnauthorizedError,
)
from casino_ledger.core.fairness import hash_seed
from casino_ledger.core.profiles import ProfileUpdate
from casino_ledger.core.wagers import BetRequest
from casino_ledger.service import CasinoService


def _fix_draw(monkeypatch, value):
    monkeypatch.setattr(fairness, "derive_float", lambda *args: value)


def _types(service, agent=None):
    return [e.type for e in reversed(service.list_events(agent=agent, limit=200))]


def _balance(service, agent):
    return service.get_state(agent)["balance"]


class TestRegistration:
    def test_register_opens_accounts_and_commitment(self, service):
        registration = service.register_agent("Lucky", "rolls dice")

        assert registration.balance == 10_000
        assert registration.commitment.nonce == 0
        assert registration.api_key.startswith("casino_")

        state = service.get_state(registration.agent)
        assert state["balance"] == 10_000
        assert state["bank_balance"] == 0
        assert state["net_worth"] == 10_000
        assert state["agent"]["name"] == "lucky"
        assert state["config"]["anchor_balance"] == 10_000
        assert state["provably_fair"] == registration.commitment.to_dict()

        [event] = service.list_events()
        assert event.type == "agent_registered"
        assert event.payload["fair_commit"]["server_seed_hash"] == registration.commitment.server_seed_hash

    def test_duplicate_name(self, service, register):
        register("lucky")
        with pytest.raises(NameTakenError):
            service.register_agent("LUCKY")

    def test_authenticate(self, service):
        registration = service.register_agent("lucky")
        assert service.authenticate(registration.api_key).id == registration.agent.id
        with pytest.raises(UnauthorizedError):
            service.authenticate("casino_nope")

    def test_registration_dict_exposes_secrets_once(self, service):
        out = service.register_agent("lucky").to_dict()
        assert set(out["agent"]) == {"id", "name", "api_key", "claim_token", "verification_code"}
        assert out["provably_fair"]["nonce"] == 0


class TestBets:
    """Wager settlement through the service."""

    def test_coinflip_win(self, service, register, monkeypatch):
        agent, _ = register("lucky")
        before = service.get_state(agent)["provably_fair"]
        _fix_draw(monkeypatch, 0.3)

        result = service.place_bet(agent, BetRequest(game="coinflip", stake=100, choice="heads"))

        assert result.win
        assert result.payout == 200
        assert result.balance == 10_100
        assert result.to_dict() == {
            "win": True,
            "payout": 200,
            "outcome": {"flip": "heads", "choice": "heads"},
            "balance": 10_100,
        }

        resolved, placed = service.list_events(types=["bet_placed", "bet_resolved"])
        assert placed.type == "bet_placed"
        assert placed.payload["balance"] == 9_900
        assert placed.payload["provably_fair"]["server_seed_hash"] == before["server_seed_hash"]
        assert placed.payload["provably_fair"]["nonce"] == 1
        assert placed.payload["provably_fair"]["client_seed"] == "agent:lucky"

        reveal = resolved.payload["provably_fair"]["reveal"]
        assert hash_seed(reveal["server_seed"]) == before["server_seed_hash"]
        assert reveal["nonce"] == 1
        assert resolved.payload["balance"] == 10_100

        after = service.get_state(agent)["provably_fair"]
        assert after == {
            "server_seed_hash": resolved.payload["provably_fair"]["next_server_seed_hash"],
            "nonce": 1,
        }

    def test_dice_under_payout(self, service, register, monkeypatch):
        agent, _ = register("lucky")
        _fix_draw(monkeypatch, 0.10)
        result = service.place_bet(agent, BetRequest(game="dice", stake=1000, target=50, direction="under"))
        assert result.outcome["roll"] == 11
        assert result.payout == 1000 * 100 // 49
        assert result.balance == 10_000 - 1000 + 1000 * 100 // 49

    def test_loss_keeps_stake(self, service, register, monkeypatch):
        agent, _ = register("lucky")
        _fix_draw(monkeypatch, 0.9)
        result = service.place_bet(agent, BetRequest(game="coinflip", stake=250, choice="heads"))
        assert not result.win
        assert result.payout == 0
        assert _balance(service, agent) == 9_750

    def test_published_reveal_verifies(self, service, register):
        agent, _ = register("lucky")
        result = service.place_bet(agent, BetRequest(game="dice", stake=10))

        resolved, placed = service.list_events(types=["bet_placed", "bet_resolved"])
        reveal = resolved.payload["provably_fair"]["reveal"]
        check = service.verify_bet(
            server_seed=reveal["server_seed"],
            server_seed_hash=reveal["server_seed_hash"],
            client_seed=reveal["client_seed"],
            nonce=reveal["nonce"],
            game="dice",
            committed_hash=placed.payload["provably_fair"]["server_seed_hash"],
        )
        assert check.ok
        assert int(check.value * 100) + 1 == result.outcome["roll"]

        wrong_game = service.verify_bet(
            reveal["server_seed"], reveal["server_seed_hash"], reveal["client_seed"], reveal["nonce"], "coinflip"
        )
        assert wrong_game.value != check.value

    @pytest.mark.parametrize("game, nonce", [("roulette", 1), ("dice", 0)])
    def test_verify_rejects_bad_input(self, service, game, nonce):
        with pytest.raises(InvalidInputError):
            service.verify_bet("s", "0" * 64, "agent:x", nonce, game)

    def test_nonces_strictly_increase(self, service, register):
        agent, _ = register("lucky")
        for _ in range(5):
            service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        nonces = [
            e.payload["provably_fair"]["reveal"]["nonce"]
            for e in reversed(service.list_events(types=["bet_resolved"]))
        ]
        assert nonces == [1, 2, 3, 4, 5]

    def test_insufficient_funds_rejected_and_audited(self, service, register):
        agent, _ = register("lucky")
        service.cash_out(agent, 9_950)

        with pytest.raises(InsufficientFundsError) as exc_info:
            service.place_bet(agent, BetRequest(game="coinflip", stake=100))

        assert exc_info.value.to_dict() == {
            "success": False,
            "error": "insufficient_funds",
            "balance": 50,
            "required": 100,
        }
        assert _balance(service, agent) == 50
        assert service.list_events(types=["bet_placed"]) == []
        [hit] = service.list_events(types=["limit_hit"])
        assert hit.payload["kind"] == "insufficient_funds"
        assert hit.payload["action"] == "bet"

    def test_losing_everything_arms_faucet(self, service, register, monkeypatch):
        agent, _ = register("lucky")
        _fix_draw(monkeypatch, 0.9)
        service.place_bet(agent, BetRequest(game="coinflip", stake=10_000, choice="heads"))

        assert _types(service)[-3:] == ["bet_placed", "bet_resolved", "broke"]
        assert service.faucet_status(agent).armed


class TestAdmission:
    """Pause, stop-loss / take-profit and rate limits."""

    def test_paused_agent_cannot_bet(self, service, register):
        agent, _ = register("lucky")
        service.set_paused("lucky", True, "review")

        with pytest.raises(AgentPausedError):
            service.place_bet(agent, BetRequest(game="coinflip", stake=10))
        hit = service.list_events(types=["limit_hit"])[0]
        assert hit.payload["kind"] == "agent_paused"
        assert _balance(service, agent) == 10_000

        service.set_paused("lucky", False)
        service.place_bet(agent, BetRequest(game="coinflip", stake=10))
        assert {"agent_paused", "agent_resumed", "bet_resolved"} <= set(_types(service))

    def test_pause_unknown_agent(self, service):
        with pytest.raises(TargetNotFoundError):
            service.set_paused("ghost", True)

    def test_stop_loss_checked_before_stake(self, service, register, monkeypatch):
        agent, _ = register("lucky")
        service.update_config(agent, ConfigUpdate(stop_loss=100))
        _fix_draw(monkeypatch, 0.9)

        service.place_bet(agent, BetRequest(game="coinflip", stake=100, choice="heads"))
        with pytest.raises(LimitBreachedError) as exc_info:
            service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        assert exc_info.value.code == "stop_loss"
        assert _balance(service, agent) == 9_900

        service.update_config(agent, ConfigUpdate(reset_anchor=True))
        service.place_bet(agent, BetRequest(game="coinflip", stake=1))

    def test_take_profit(self, service, register, monkeypatch):
        agent, _ = register("lucky")
        service.update_config(agent, ConfigUpdate(take_profit=100))
        _fix_draw(monkeypatch, 0.1)
        service.place_bet(agent, BetRequest(game="coinflip", stake=100, choice="heads"))
        with pytest.raises(LimitBreachedError) as exc_info:
            service.place_bet(agent, BetRequest(game="coinflip", stake=100))
        assert exc_info.value.code == "take_profit"
        hit = service.list_events(types=["limit_hit"])[0]
        assert hit.payload["take_profit"] == 100
        assert hit.payload["anchor_balance"] == 10_000

    def test_bet_rate_limit(self, db, clock):
        config = CasinoConfig.from_dict({"rate_limits": {"bet": {"window_seconds": 60, "max_count": 2}}})
        service = CasinoService(db, config)
        agent = service.register_agent("lucky").agent

        for _ in range(2):
            service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        with pytest.raises(RateLimitedError) as exc_info:
            service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        assert exc_info.value.retry_after_seconds == 60

        hit = service.list_events(types=["limit_hit"])[0]
        assert hit.payload["action"] == "bet"
        assert hit.payload["retry_after_seconds"] == 60
        assert len(service.list_events(types=["bet_resolved"])) == 2

        clock.advance(60)
        service.place_bet(agent, BetRequest(game="coinflip", stake=1))

    def test_paused_attempts_do_not_use_bet_budget(self, db):
        """A paused agent is turned away before the rate limiter records anything."""
        config = CasinoConfig.from_dict({"rate_limits": {"bet": {"window_seconds": 60, "max_count": 2}}})
        service = CasinoService(db, config)
        agent = service.register_agent("lucky").agent
        service.set_paused("lucky", True)

        for _ in range(5):
            with pytest.raises(AgentPausedError):
                service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        with service.db.reader() as conn:
            assert conn.execute("SELECT COUNT(*) FROM rate_limits").fetchone() == (0,)
        hits = service.list_events(types=["limit_hit"])
        assert [h.payload["kind"] for h in hits] == ["agent_paused"] * 5

        service.set_paused("lucky", False)
        for _ in range(2):
            service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        assert len(service.list_events(types=["bet_resolved"])) == 2

    def test_update_config_event(self, service, register):
        agent, _ = register("lucky")
        config = service.update_config(agent, ConfigUpdate(max_bet=100, risk_profile="balanced"))
        assert config.max_bet == 100
        event = service.list_events(types=["config_updated"])[0]
        assert event.payload["risk_profile"] == "balanced"
        assert event.payload["anchor_reset"] is False
        assert service.get_config(agent) == (config, 10_000)


class TestTipsAndBank:
    def test_tip(self, service, register):
        alice, _ = register("alice")
        bob, _ = register("bob")

        result = service.tip(alice, "Bob", 300, note="gg")

        assert (result.from_balance, result.to_balance) == (9_700, 10_300)
        event = service.list_events(types=["tip_sent"])[0]
        assert event.agent == "alice"
        assert event.target_agent_id == bob.id
        assert event.payload["note"] == "gg"
        with service.db.reader() as conn:
            assert conn.execute("SELECT amount FROM tips").fetchall() == [(300,)]

    def test_tip_errors_leave_no_trace(self, service, register):
        alice, _ = register("alice")
        register("bob")

        with pytest.raises(SelfTipError):
            service.tip(alice, "ALICE", 1)
        with pytest.raises(TargetNotFoundError):
            service.tip(alice, "carol", 1)
        with pytest.raises(InsufficientFundsError):
            service.tip(alice, "bob", 10_001)
        with pytest.raises(InvalidInputError):
            service.tip(alice, "bob", 0)
        with pytest.raises(InvalidInputError):
            service.tip(alice, "bob", 1, note="x" * 161)

        assert _balance(service, alice) == 10_000
        assert service.list_events(types=["tip_sent", "limit_hit"]) == []

    def test_cash_out_and_in(self, service, register):
        agent, _ = register("lucky")

        out = service.cash_out(agent, 4_000, note="saving")
        assert (out.casino_balance, out.bank_balance) == (6_000, 4_000)
        back = service.cash_in(agent, 1_000)
        assert (back.casino_balance, back.bank_balance) == (7_000, 3_000)

        with pytest.raises(InsufficientBankError):
            service.cash_in(agent, 3_001)
        with pytest.raises(InsufficientFundsError):
            service.cash_out(agent, 7_001)

        state = service.get_state(agent)
        assert (state["balance"], state["bank_balance"], state["net_worth"]) == (7_000, 3_000, 10_000)
        assert _types(service, "lucky")[-2:] == ["cashout", "cashin"]
        with service.db.reader() as conn:
            rows = conn.execute("SELECT direction, amount FROM transfers ORDER BY created_at, direction DESC").fetchall()
        assert sorted(rows) == [("cashin", 1_000), ("cashout", 4_000)]

    def test_tips_conserve_chips(self, service, register):
        alice, _ = register("alice")
        bob, _ = register("bob")
        for amount in (10, 250, 3):
            service.tip(alice, "bob", amount)
            service.tip(bob, "alice", amount * 2)
        total = sum(row["total_wealth"] for row in service.leaderboard())
        assert total == 20_000


class TestFaucet:
    """Bankruptcy, cooldown and the grant."""

    def test_full_cycle(self, service, register, clock):
        alice, _ = register("alice")
        register("bob")

        service.tip(alice, "bob", 10_000)
        status = service.faucet_status(alice)
        assert status.armed
        assert status.remaining_seconds == 1_800

        clock.advance(600)
        with pytest.raises(TooSoonError) as exc_info:
            service.faucet_claim(alice)
        assert exc_info.value.remaining_seconds == 1_200
        denied = service.list_events(types=["bailout_denied_too_soon"])
        assert denied[0].payload["remaining_seconds"] == 1_200

        clock.advance(1_200)
        grant = service.faucet_claim(alice)
        assert (grant.amount, grant.balance) == (1_000, 1_000)

        with pytest.raises(NotBrokeError):
            service.faucet_claim(alice)
        assert not service.faucet_status(alice).armed
        assert service.stats()["totals"]["bailouts"] == 1

    def test_bank_savings_mean_not_broke(self, service, register):
        agent, _ = register("saver")
        service.cash_out(agent, 10_000)
        assert not service.faucet_status(agent).armed
        with pytest.raises(NotBrokeError):
            service.faucet_claim(agent)

    def test_rate_limited_transfers_move_nothing(self, db):
        config = CasinoConfig.from_dict(
            {
                "rate_limits": {
                    "tip": {"window_seconds": 60, "max_count": 1},
                    "cashout": {"window_seconds": 60, "max_count": 1},
                }
            }
        )
        service = CasinoService(db, config)
        alice = service.register_agent("alice").agent
        service.register_agent("bob")

        assert service.tip(alice, "bob", 10).from_balance == 9_990
        with pytest.raises(RateLimitedError):
            service.tip(alice, "bob", 10)

        assert service.cash_out(alice, 100).casino_balance == 9_890
        with pytest.raises(RateLimitedError):
            service.cash_out(alice, 100)

        state = service.get_state(alice)
        assert (state["balance"], state["bank_balance"]) == (9_890, 100)
        assert len(service.list_events(types=["tip_sent"])) == 1
        hits = service.list_events(types=["limit_hit"])
        assert [h.payload["action"] for h in reversed(hits)] == ["tip", "cashout"]


class TestProfiles:
    """Self-declared profiles and the public agent page."""

    def test_registration_creates_empty_profile(self, service, register):
        agent, _ = register("lucky")
        with service.db.reader() as conn:
            assert conn.execute(
                "SELECT traits, rivals FROM agent_profiles WHERE agent_id = ?", [agent.id]
            ).fetchone() == ("[]", "[]")
        assert service.get_profile(agent).to_dict()["bio"] is None

    def test_update_profile(self, service, register):
        agent, _ = register("lucky")

        profile, redacted = service.update_profile(
            agent, ProfileUpdate(bio="ask me for casino_abc123", favorite_game="dice", traits=["bold", "loud"])
        )
        assert redacted is True
        assert service.get_profile(agent) == profile

        service.update_profile(agent, ProfileUpdate.model_validate({"traits": None}))
        stored = service.get_profile(agent)
        assert stored.traits == []
        assert stored.bio == "ask me for [REDACTED]"

        events = service.list_events(types=["profile_updated"])
        assert [e.payload["traits_count"] for e in events] == [0, 2]
        assert events[0].payload["favorite_game"] == "dice"

    def test_public_profile(self, service, register, monkeypatch):
        alice, _ = register("alice")
        register("bob")
        service.update_profile(alice, ProfileUpdate(motto="heads always"))
        _fix_draw(monkeypatch, 0.3)
        service.place_bet(alice, BetRequest(game="coinflip", stake=100, choice="heads"))
        service.place_bet(alice, BetRequest(game="coinflip", stake=50, choice="tails"))
        service.tip(alice, "bob", 25)

        page = service.public_profile("Alice")

        data = page["agent"]
        assert data["name"] == "alice"
        assert data["total_wealth"] == 10_000 + 100 - 50 - 25
        assert data["public_profile"]["motto"] == "heads always"
        stats = data["stats"]
        assert (stats["wins"], stats["total_bets"]) == (1, 2)
        assert stats["largest_win"] == 200
        assert stats["favorite_game"] == "coinflip"
        assert stats["losses_in_row"] == 1
        assert (stats["tips_sent"], stats["tips_received"]) == (25, 0)
        assert page["events"][0]["type"] == "tip_sent"
        assert all(e["agent"] == "alice" for e in page["events"])

    def test_public_profile_unknown(self, service):
        with pytest.raises(TargetNotFoundError):
            service.public_profile("ghost")

    def test_status(self, service, register):
        agent, _ = register("lucky")
        assert service.get_status(agent) == {
            "status": "pending_claim",
            "agent": {"id": agent.id, "name": "lucky"},
        }


class TestReadModels:
    def test_leaderboard_orders_by_wealth_then_name(self, service, register):
        alice, _ = register("alice")
        register("bob")
        register("carol")
        service.tip(alice, "carol", 500)
        service.cash_out(alice, 100)

        rows = service.leaderboard()
        assert [r["name"] for r in rows] == ["carol", "bob", "alice"]
        assert rows[2] == {
            "name": "alice",
            "claim_status": "pending_claim",
            "is_paused": False,
            "casino_balance": 9_400,
            "bank_balance": 100,
            "total_wealth": 9_500,
        }
        assert len(service.leaderboard(limit=1)) == 1
        with pytest.raises(InvalidInputError):
            service.leaderboard(limit=0)

    def test_stats(self, service, register):
        assert service.stats()["top_agent"] is None
        alice, _ = register("alice")
        register("bob")
        service.set_paused("bob", True)
        service.place_bet(alice, BetRequest(game="coinflip", stake=5))

        stats = service.stats()
        assert stats["totals"]["agents"] == 2
        assert stats["totals"]["active_agents"] == 1
        assert stats["totals"]["bets_resolved"] == 1
        assert stats["last_event_at"] is not None

    def test_feed_agent_filter(self, service, register):
        register("alice")
        register("bob")
        assert [e.agent for e in service.list_events(agent="Alice")] == ["alice"]
        assert len(service.events_since(agent="bob")) == 1
        with pytest.raises(TargetNotFoundError):
            service.list_events(agent="ghost")

    def test_stream_events(self, service, register):
        register("alice")
        polls = iter([False, True])
        events = list(service.stream_events(should_stop=lambda: next(polls), poll_interval=0.001))
        assert [e.type for e in events] == ["agent_registered"]

    def test_prune_rate_limits(self, service, register, clock):
        agent, _ = register("alice")
        service.place_bet(agent, BetRequest(game="coinflip", stake=1))
        clock.advance(3_600)
        assert service.prune_rate_limits() == 1
