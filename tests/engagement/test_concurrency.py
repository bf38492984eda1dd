"""Race tests: concurrent callers must never break the uniqueness rules."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from homexpert.engagement import (
    AlreadyLockedError,
    ConcurrencyTimeoutError,
    DuplicateActiveContractError,
    DuplicateRequestError,
    EngagementError,
    InvalidTransitionError,
    build_engagement,
)
from homexpert.engagement.claims import acquire_claim
from homexpert.engagement.storage import (
    PAIR_CLAIMS_TABLE,
    KeyedLocks,
    SQLiteEngagementStorage,
)
from homexpert.types import Actor, utc_now

WORKERS = 8


def race(fn, count=WORKERS):
    """Run ``fn(i)`` on ``count`` threads released together.

    Returns (results, errors) in completion order.
    """
    barrier = threading.Barrier(count)

    def _run(i):
        barrier.wait()
        try:
            return fn(i), None
        except EngagementError as e:
            return None, e

    with ThreadPoolExecutor(max_workers=count) as pool:
        outcomes = list(pool.map(_run, range(count)))
    results = [r for r, e in outcomes if e is None]
    errors = [e for r, e in outcomes if e is not None]
    return results, errors


class TestProfileLockRace:
    """Households racing for the same profile."""

    def test_exactly_one_household_wins(self, ledger):
        results, errors = race(lambda i: ledger.lock(f"household-{i}", "profile-p"))

        assert len(results) == 1
        assert len(errors) == WORKERS - 1
        assert all(isinstance(e, AlreadyLockedError) for e in errors)
        assert ledger.get_lock("profile-p").household_id == results[0].household_id

    def test_separate_processes_share_one_winner(self, tmp_path, clock):
        """Two coordinators over one database file do not share in-process mutexes."""
        db_path = tmp_path / "engagement.db"
        sides = [
            build_engagement(storage=SQLiteEngagementStorage(db_path), now_fn=clock)
            for _ in range(2)
        ]

        results, errors = race(
            lambda i: sides[i % 2].ledger.lock(f"household-{i}", "profile-p"), count=4
        )

        assert len(results) == 1
        assert all(isinstance(e, AlreadyLockedError) for e in errors)


class TestHireRequestRace:
    """Concurrent hire request operations."""

    def test_one_open_request_per_pair(self, engine, storage):
        household = Actor.household("household-a")

        results, errors = race(
            lambda i: engine.create(
                household,
                "househelp-w",
                job_type="live-in",
                salary_offered=15000 + i,
                terms_accepted=True,
            )
        )

        assert len(results) == 1
        assert all(isinstance(e, DuplicateRequestError) for e in errors)
        assert {e.existing_id for e in errors} == {results[0].id}
        assert storage.count(PAIR_CLAIMS_TABLE) == 1

    def test_accept_races_withdraw(self, engine, make_request, household, househelp):
        request = make_request()
        actions = [
            lambda: engine.accept(request.id, househelp),
            lambda: engine.withdraw(request.id, household),
        ]

        results, errors = race(lambda i: actions[i](), count=2)

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidTransitionError)
        assert engine.get(request.id).status == results[0].status

    def test_counter_offers_alternate_under_contention(self, engine, make_request, househelp):
        request = make_request()

        results, errors = race(
            lambda i: engine.counter_offer(request.id, househelp, {"salary_offered": 16000 + i})
        )

        assert len(results) == 1
        assert len(engine.get(request.id).negotiations) == 1


class TestContractRace:
    """Concurrent finalization of one accepted request."""

    def test_one_contract_per_request(self, engagement, make_request, househelp):
        request = make_request()
        engagement.engine.accept(request.id, househelp)

        results, errors = race(lambda i: engagement.contracts.create_from_request(request.id))

        assert len(results) == 1
        assert all(isinstance(e, DuplicateActiveContractError) for e in errors)
        assert engagement.contracts.list_for_actor(Actor.household("household-a")) == results


class TestKeyedLocks:
    """Bounded waits on per-key mutexes."""

    def test_timeout_raises(self):
        locks = KeyedLocks(timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def _holder():
            with locks.hold("pair:a:w"):
                held.set()
                done.wait(2)

        thread = threading.Thread(target=_holder)
        thread.start()
        held.wait(2)
        try:
            with pytest.raises(ConcurrencyTimeoutError):
                with locks.hold("pair:a:w"):
                    pass
        finally:
            done.set()
            thread.join()

    def test_reentrant_and_cleaned_up(self):
        locks = KeyedLocks(timeout=0.05)

        with locks.hold("k"):
            with locks.hold("k"):
                assert len(locks) == 1

        assert len(locks) == 0

    def test_other_keys_do_not_block(self):
        locks = KeyedLocks(timeout=0.05)

        with locks.hold("a"):
            with locks.hold("b"):
                assert len(locks) == 2


class TestClaims:
    """Claims whose holder record is missing."""

    def test_fresh_orphan_still_blocks(self, storage):
        storage.insert_if_absent(
            PAIR_CLAIMS_TABLE, "k", {"holder_id": "in-flight", "claimed_at": utc_now().isoformat()}
        )

        assert acquire_claim(storage, "k", "mine", is_stale=lambda holder: None) == "in-flight"

    def test_old_orphan_is_reclaimed(self, storage):
        claimed_at = utc_now() - timedelta(hours=1)
        storage.insert_if_absent(
            PAIR_CLAIMS_TABLE, "k", {"holder_id": "crashed", "claimed_at": claimed_at.isoformat()}
        )

        assert acquire_claim(storage, "k", "mine", is_stale=lambda holder: None) is None
        assert storage.get(PAIR_CLAIMS_TABLE, "k").data["holder_id"] == "mine"

    def test_orphan_ages_on_the_given_clock(self, storage, clock):
        storage.insert_if_absent(
            PAIR_CLAIMS_TABLE, "k", {"holder_id": "crashed", "claimed_at": clock.now.isoformat()}
        )

        blocked = acquire_claim(
            storage, "k", "mine", is_stale=lambda holder: None, now=clock.advance(minutes=4)
        )
        reclaimed = acquire_claim(
            storage, "k", "mine", is_stale=lambda holder: None, now=clock.advance(minutes=1)
        )

        assert blocked == "crashed"
        assert reclaimed is None
        assert storage.get(PAIR_CLAIMS_TABLE, "k").data["claimed_at"] == clock.now.isoformat()

    def test_live_holder_blocks(self, storage):
        storage.insert_if_absent(PAIR_CLAIMS_TABLE, "k", {"holder_id": "live"})

        assert acquire_claim(storage, "k", "mine", is_stale=lambda holder: False) == "live"
