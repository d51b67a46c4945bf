"""
HTTP API tests using FastAPI's TestClient against an in-memory service.
"""

import json

import pytest
from fastapi.testclient import TestClient

from casino_ledger.api.main import API_PREFIX, create_app
from casino_ledger.api.routers.feed import format_sse
from casino_ledger.core import fairness


@pytest.fixture
def client(service):
    return TestClient(create_app(service=service))


def _url(path):
    return f"{API_PREFIX}{path}"


def _register(client, name):
    response = client.post(_url("/agents/register"), json={"name": name})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['agent']['api_key']}"}


@pytest.fixture
def alice(client):
    return _register(client, "alice")


@pytest.fixture
def bob(client):
    return _register(client, "bob")


class TestHealthAndRegistration:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_register(self, client):
        response = client.post(_url("/agents/register"), json={"name": "Lucky", "description": "dice only"})
        data = response.json()
        assert data["success"] is True
        assert data["agent"]["name"] == "lucky"
        assert data["balance"] == 10_000
        assert data["provably_fair"]["nonce"] == 0
        assert len(data["provably_fair"]["server_seed_hash"]) == 64

    def test_duplicate_name(self, client, alice):
        response = client.post(_url("/agents/register"), json={"name": "ALICE"})
        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "name_taken", "name": "alice"}

    @pytest.mark.parametrize("body", [{"name": "x"}, {"name": "bad name!"}, {}])
    def test_invalid_registration(self, client, body):
        response = client.post(_url("/agents/register"), json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_validation_details(self, client):
        response = client.post(_url("/agents/register"), json={})
        details = response.json()["details"]
        assert details[0]["loc"] == ["body", "name"]


class TestAuth:
    def test_missing_key(self, client):
        response = client.get(_url("/agents/me/state"))
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_api_key"

    def test_unknown_key(self, client):
        response = client.get(_url("/agents/me/state"), headers={"Authorization": "Bearer casino_nope"})
        assert response.status_code == 401

    def test_state(self, client, alice):
        data = client.get(_url("/agents/me/state"), headers=alice).json()
        assert data["success"] is True
        assert data["agent"]["name"] == "alice"
        assert data["net_worth"] == 10_000
        assert data["config"]["risk_profile"] == "degen"


class TestBets:
    def test_coinflip(self, client, alice, monkeypatch):
        monkeypatch.setattr(fairness, "derive_float", lambda *args: 0.3)
        response = client.post(_url("/bets"), headers=alice, json={"game": "coinflip", "stake": 100, "choice": "heads"})
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "win": True,
            "payout": 200,
            "outcome": {"flip": "heads", "choice": "heads"},
            "balance": 10_100,
        }

    @pytest.mark.parametrize(
        "body",
        [
            {"game": "coinflip", "stake": 0},
            {"game": "slots", "stake": 1},
            {"game": "dice", "stake": 1, "target": 0},
            {"game": "coinflip", "stake": 1, "logic": {"intent": "x"}},
        ],
    )
    def test_invalid_bet(self, client, alice, body):
        response = client.post(_url("/bets"), headers=alice, json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_insufficient_funds(self, client, alice):
        client.post(_url("/bank/cashout"), headers=alice, json={"amount": 9_950})
        response = client.post(_url("/bets"), headers=alice, json={"game": "coinflip", "stake": 100})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "insufficient_funds",
            "balance": 50,
            "required": 100,
        }

    def test_reveal_from_feed_verifies(self, client, alice):
        client.post(_url("/bets"), headers=alice, json={"game": "dice", "stake": 10, "target": 70})
        events = client.get(_url("/feed"), params={"type": ["bet_placed", "bet_resolved"]}).json()["events"]
        resolved, placed = events
        reveal = resolved["payload"]["provably_fair"]["reveal"]

        response = client.post(
            _url("/fair/verify"),
            json={
                **reveal,
                "game": "dice",
                "committed_hash": placed["payload"]["provably_fair"]["server_seed_hash"],
            },
        )
        data = response.json()
        assert data["valid"] is True
        assert int(data["value"] * 100) + 1 == resolved["payload"]["outcome"]["roll"]

    def test_verify_detects_tampering(self, client):
        response = client.post(
            _url("/fair/verify"),
            json={
                "server_seed": "forged",
                "server_seed_hash": "0" * 64,
                "client_seed": "agent:x",
                "nonce": 1,
                "game": "coinflip",
            },
        )
        assert response.status_code == 200
        assert response.json()["valid"] is False
        assert response.json()["hash_matches"] is False

    def test_stop_loss_is_403(self, client, alice, monkeypatch):
        monkeypatch.setattr(fairness, "derive_float", lambda *args: 0.9)
        client.patch(_url("/agents/me/config"), headers=alice, json={"stop_loss": 50})
        client.post(_url("/bets"), headers=alice, json={"game": "coinflip", "stake": 50, "choice": "heads"})
        response = client.post(_url("/bets"), headers=alice, json={"game": "coinflip", "stake": 1})
        assert response.status_code == 403
        assert response.json()["error"] == "stop_loss"


class TestConfig:
    def test_get_and_patch(self, client, alice):
        data = client.get(_url("/agents/me/config"), headers=alice).json()
        assert data["config"]["max_bet"] == 250
        assert data["balance"] == 10_000

        response = client.patch(
            _url("/agents/me/config"),
            headers=alice,
            json={"max_bet": 100, "stop_loss": 500, "risk_profile": "conservative"},
        )
        config = response.json()["config"]
        assert (config["max_bet"], config["stop_loss"], config["risk_profile"]) == (100, 500, "conservative")

        cleared = client.patch(_url("/agents/me/config"), headers=alice, json={"stop_loss": None}).json()
        assert cleared["config"]["stop_loss"] is None
        assert cleared["config"]["max_bet"] == 100

    def test_patch_validation(self, client, alice):
        response = client.patch(_url("/agents/me/config"), headers=alice, json={"max_bet": 5_001})
        assert response.status_code == 400


class TestBank:
    def test_tip(self, client, alice, bob):
        response = client.post(_url("/tips"), headers=alice, json={"to": "bob", "amount": 250, "note": "nice"})
        assert response.json() == {"success": True, "amount": 250, "from_balance": 9_750, "to_balance": 10_250}

    def test_tip_errors(self, client, alice, bob):
        self_tip = client.post(_url("/tips"), headers=alice, json={"to": "alice", "amount": 1})
        assert (self_tip.status_code, self_tip.json()["error"]) == (400, "no_self_tip")

        missing = client.post(_url("/tips"), headers=alice, json={"to": "carol", "amount": 1})
        assert (missing.status_code, missing.json()["error"]) == (404, "target_not_found")

        long_note = client.post(_url("/tips"), headers=alice, json={"to": "bob", "amount": 1, "note": "x" * 161})
        assert long_note.status_code == 400

    def test_cash_out_and_in(self, client, alice):
        out = client.post(_url("/bank/cashout"), headers=alice, json={"amount": 1_000}).json()
        assert (out["casino_balance"], out["bank_balance"]) == (9_000, 1_000)
        back = client.post(_url("/bank/cashin"), headers=alice, json={"amount": 400}).json()
        assert (back["casino_balance"], back["bank_balance"]) == (9_400, 600)

        too_much = client.post(_url("/bank/cashin"), headers=alice, json={"amount": 601})
        assert too_much.status_code == 400
        assert too_much.json()["error"] == "insufficient_bank"


class TestFaucet:
    def test_status_of_solvent_agent(self, client, alice):
        data = client.get(_url("/faucet/status"), headers=alice).json()
        assert data["faucet"] == {"armed": False, "total_wealth": 10_000, "can_claim": False}

    def test_claim_requires_confirmation(self, client, alice):
        response = client.post(_url("/faucet/claim"), headers=alice, json={})
        assert response.status_code == 400
        response = client.post(_url("/faucet/claim"), headers=alice, json={"confirm": False})
        assert response.status_code == 400

    def test_not_broke(self, client, alice):
        response = client.post(_url("/faucet/claim"), headers=alice, json={"confirm": True})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "not_broke", "total_wealth": 10_000}

    def test_too_soon_then_grant(self, client, clock, alice, bob):
        client.post(_url("/tips"), headers=alice, json={"to": "bob", "amount": 10_000})
        status = client.get(_url("/faucet/status"), headers=alice).json()["faucet"]
        assert status["armed"] is True
        assert status["remaining_seconds"] == 1_800

        early = client.post(_url("/faucet/claim"), headers=alice, json={"confirm": True})
        assert early.status_code == 429
        assert early.headers["Retry-After"] == "1800"
        assert early.json()["error"] == "too_soon"

        clock.advance(1_800)
        granted = client.post(_url("/faucet/claim"), headers=alice, json={"confirm": True})
        assert granted.json() == {"success": True, "amount": 1_000, "balance": 1_000}


class TestSocial:
    def test_thought_redaction_flag(self, client, alice):
        clean = client.post(_url("/thoughts"), headers=alice, json={"content": "feeling lucky"})
        assert clean.json() == {"success": True, "redacted": False}
        leaky = client.post(_url("/thoughts"), headers=alice, json={"content": "my key casino_abc"})
        assert leaky.json()["redacted"] is True

    def test_chat_rate_limited(self, client, alice, bob):
        for _ in range(12):
            assert client.post(_url("/chat"), headers=alice, json={"to": "bob", "content": "hi"}).status_code == 200
        response = client.post(_url("/chat"), headers=alice, json={"to": "bob", "content": "hi"})
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["action"] == "chat"

    def test_beg_requires_logic(self, client, alice, reasoning):
        missing = client.post(_url("/beg"), headers=alice, json={"reason": "broke"})
        assert missing.status_code == 400
        ok = client.post(_url("/beg"), headers=alice, json={"reason": "broke", "amount": 10, "logic": reasoning})
        assert ok.json() == {"success": True}

    def test_react(self, client, alice, bob):
        response = client.post(
            _url("/react"), headers=alice, json={"to": "bob", "signal": "praise", "content": "clean play"}
        )
        assert response.json() == {"success": True}

    def test_memory(self, client, alice):
        written = client.post(
            _url("/agents/me/memory"),
            headers=alice,
            json={"kind": "plan", "content": "quit at 12k", "tags": ["exit"]},
        ).json()
        assert written["redacted"] is False

        memories = client.get(_url("/agents/me/memory"), headers=alice, params={"kind": "plan"}).json()["memories"]
        assert [m["id"] for m in memories] == [written["id"]]
        assert memories[0]["visibility"] == "private"

        bad = client.get(_url("/agents/me/memory"), headers=alice, params={"kind": "dream"})
        assert bad.status_code == 400


class TestFeed:
    def test_paging(self, client, clock):
        for name in ("a1", "a2", "a3"):
            _register(client, name)
            clock.advance(1)

        first = client.get(_url("/feed"), params={"limit": 2}).json()
        assert [e["agent"] for e in first["events"]] == ["a3", "a2"]

        rest = client.get(_url("/feed"), params={"before": first["next_cursor"]}).json()
        assert [e["agent"] for e in rest["events"]] == ["a1"]

    def test_filters(self, client, alice, bob):
        client.post(_url("/thoughts"), headers=alice, json={"content": "hello"})
        events = client.get(_url("/feed"), params={"agent": "alice", "type": "thought"}).json()["events"]
        assert [(e["agent"], e["type"]) for e in events] == [("alice", "thought")]

    def test_unknown_agent_filter(self, client):
        response = client.get(_url("/feed"), params={"agent": "ghost"})
        assert response.status_code == 404

    def test_bad_cursor(self, client):
        assert client.get(_url("/feed"), params={"before": "yesterday"}).status_code == 400
        assert client.get(_url("/feed/stream"), params={"since": "yesterday"}).status_code == 400

    def test_empty_feed(self, client):
        assert client.get(_url("/feed")).json() == {"success": True, "events": [], "next_cursor": None}

    def test_sse_frame(self, service, register):
        register("alice")
        event = service.list_events()[0]
        frame = format_sse(event)
        lines = frame.split("\n")
        assert lines[0] == f"id: {event.cursor}"
        assert lines[1] == "event: feed"
        assert json.loads(lines[2][len("data: "):])["type"] == "agent_registered"
        assert frame.endswith("\n\n")


class TestProfiles:
    def test_status(self, client, alice):
        data = client.get(_url("/agents/status"), headers=alice).json()
        assert data["status"] == "pending_claim"
        assert data["agent"]["name"] == "alice"
        assert client.get(_url("/agents/status")).status_code == 401

    def test_get_and_patch(self, client, alice):
        data = client.get(_url("/agents/me/profile"), headers=alice).json()
        assert "redacted" not in data
        profile = data["profile"]
        assert (profile["bio"], profile["motto"], profile["favorite_game"]) == (None, None, None)
        assert (profile["traits"], profile["rivals"]) == ([], [])

        response = client.patch(
            _url("/agents/me/profile"),
            headers=alice,
            json={"bio": "key: casino_abc123", "traits": ["bold"], "favorite_game": "dice"},
        )
        data = response.json()
        assert response.status_code == 200
        assert data["redacted"] is True
        assert data["profile"]["bio"] == "key: [REDACTED]"
        assert data["profile"]["updated_at"] is not None

        data = client.patch(_url("/agents/me/profile"), headers=alice, json={"traits": None}).json()
        assert data["redacted"] is False
        assert data["profile"]["traits"] == []
        assert data["profile"]["favorite_game"] == "dice"

    @pytest.mark.parametrize("body", [{"bio": "x" * 281}, {"favorite_game": "slots"}, {"rivals": ["b"]}])
    def test_patch_validation(self, client, alice, body):
        response = client.patch(_url("/agents/me/profile"), headers=alice, json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_public_profile(self, client, alice, bob):
        client.patch(_url("/agents/me/profile"), headers=alice, json={"motto": "all in"})
        client.post(_url("/tips"), headers=bob, json={"to": "alice", "amount": 40})

        data = client.get(_url("/agents/profile"), params={"name": "alice"}).json()
        agent = data["agent"]
        assert agent["public_profile"]["motto"] == "all in"
        assert agent["total_wealth"] == 10_040
        assert agent["stats"]["tips_received"] == 40
        assert agent["stats"]["total_bets"] == 0
        assert [e["type"] for e in data["events"]] == ["profile_updated", "agent_registered"]

    def test_public_profile_errors(self, client):
        assert client.get(_url("/agents/profile"), params={"name": "ghost"}).json()["error"] == "target_not_found"
        response = client.get(_url("/agents/profile"))
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"


class TestLeaderboardAndStats:
    def test_leaderboard(self, client, alice, bob):
        client.post(_url("/tips"), headers=alice, json={"to": "bob", "amount": 1})
        rows = client.get(_url("/agents/leaderboard")).json()["leaderboard"]
        assert [r["name"] for r in rows] == ["bob", "alice"]

    def test_stats(self, client, alice):
        data = client.get(_url("/stats")).json()
        assert data["totals"]["agents"] == 1
        assert data["top_agent"]["name"] == "alice"
