"""
Tests for the Fairness Engine.

The draw must be reproducible by anyone holding the reveal, the revealed
seed must hash to the commitment published before the draw, and nonces
must advance by exactly one per draw.
"""

import hashlib
import hmac

from casino_ledger.core.fairness import (
    FairnessEngine,
    FairReveal,
    client_seed_for,
    derive_float,
    draw_message,
    hash_seed,
    new_seed,
    verify_reveal,
)


def _independent_value(seed: str, client_seed: str, nonce: int, game: str) -> float:
    message = f"{client_seed}:{nonce}:{game}".encode()
    digest = hmac.new(seed.encode(), message, hashlib.sha256).hexdigest()
    return int(digest[:13], 16) / 2**52


class TestHelpers:
    """Pure helpers of the commit-reveal protocol."""

    def test_hash_seed_is_sha256_hex(self):
        assert hash_seed("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_new_seed_is_32_random_bytes_hex(self):
        seed = new_seed()
        assert len(seed) == 64
        int(seed, 16)
        assert new_seed() != seed

    def test_draw_message_format(self):
        assert draw_message("agent:lucky", 7, "dice") == "agent:lucky:7:dice"

    def test_client_seed_for_agent(self):
        assert client_seed_for("lucky") == "agent:lucky"

    def test_derive_float_matches_independent_hmac(self):
        seed = "ab" * 32
        for nonce in (1, 2, 99):
            for game in ("coinflip", "dice"):
                expected = _independent_value(seed, "agent:x", nonce, game)
                assert derive_float(seed, "agent:x", nonce, game) == expected

    def test_derive_float_in_unit_interval(self):
        for nonce in range(1, 200):
            value = derive_float("seed", "agent:x", nonce, "coinflip")
            assert 0.0 <= value < 1.0

    def test_game_is_part_of_the_message(self):
        assert derive_float("s", "c", 1, "coinflip") != derive_float("s", "c", 1, "dice")


class TestVerifyReveal:
    """Offline verification of published reveals."""

    def test_valid_reveal(self):
        seed = "11" * 32
        reveal = FairReveal(seed, hash_seed(seed), 3, "agent:x")
        check = verify_reveal(reveal, "dice", committed_hash=hash_seed(seed))
        assert check.ok
        assert check.value == _independent_value(seed, "agent:x", 3, "dice")

    def test_tampered_seed_fails_hash_check(self):
        reveal = FairReveal("other", hash_seed("original"), 1, "agent:x")
        check = verify_reveal(reveal, "coinflip")
        assert not check.hash_matches
        assert not check.ok

    def test_wrong_commitment_fails(self):
        seed = "22" * 32
        reveal = FairReveal(seed, hash_seed(seed), 1, "agent:x")
        check = verify_reveal(reveal, "coinflip", committed_hash="0" * 64)
        assert check.hash_matches
        assert not check.commitment_matches
        assert not check.ok


class TestFairnessEngine:
    """Commit and draw against the database."""

    def test_commit_creates_state_once(self, db):
        engine = FairnessEngine()
        with db.transaction() as uow:
            first = engine.commit(uow, "a1")
            second = engine.commit(uow, "a1")
        assert first == second
        assert first.nonce == 0

    def test_draw_reveals_committed_seed_and_rotates(self, db):
        seeds = iter(["seed-one", "seed-two", "seed-three"])
        engine = FairnessEngine(seed_factory=lambda: next(seeds))

        with db.transaction() as uow:
            commitment = engine.commit(uow, "a1")
            draw = engine.draw(uow, "a1", "agent:x", "coinflip")

        assert commitment.server_seed_hash == hash_seed("seed-one")
        assert draw.reveal.server_seed == "seed-one"
        assert draw.reveal.server_seed_hash == commitment.server_seed_hash
        assert draw.reveal.nonce == commitment.nonce + 1
        assert draw.next_server_seed_hash == hash_seed("seed-two")
        assert draw.value == _independent_value("seed-one", "agent:x", 1, "coinflip")

        with db.transaction() as uow:
            after = engine.commit(uow, "a1")
        assert after.server_seed_hash == draw.next_server_seed_hash
        assert after.nonce == 1

    def test_nonce_advances_by_one_per_draw(self, db):
        engine = FairnessEngine()
        nonces = []
        with db.transaction() as uow:
            for _ in range(5):
                nonces.append(engine.draw(uow, "a1", "agent:x", "dice").reveal.nonce)
        assert nonces == [1, 2, 3, 4, 5]

    def test_each_draw_recorded_in_fair_reveals(self, db):
        engine = FairnessEngine()
        with db.transaction() as uow:
            draw = engine.draw(uow, "a1", "agent:x", "dice")
        with db.reader() as conn:
            row = conn.execute(
                "SELECT server_seed, server_seed_hash, game, value FROM fair_reveals "
                "WHERE agent_id = 'a1' AND nonce = 1"
            ).fetchone()
        assert row == (draw.reveal.server_seed, draw.reveal.server_seed_hash, "dice", draw.value)

    def test_failed_transaction_rolls_back_draw(self, db):
        engine = FairnessEngine()
        with db.transaction() as uow:
            before = engine.commit(uow, "a1")

        try:
            with db.transaction() as uow:
                engine.draw(uow, "a1", "agent:x", "coinflip")
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        with db.transaction() as uow:
            assert engine.commit(uow, "a1") == before
        with db.reader() as conn:
            assert conn.execute("SELECT COUNT(*) FROM fair_reveals").fetchone()[0] == 0
