"""Tests for snapshot reconciliation and lifecycle transitions."""

import asyncio

import pytest

from conftest import GAME_ID, make_snapshot

from empire_client.engine.ledger import OrderLedger
from empire_client.engine.reconciler import (
    Reconciler,
    SnapshotChange,
    TransitionKind,
    decide,
    lifecycle_for,
)
from empire_client.errors import ReconciliationError
from empire_client.models.lifecycle import ACTIVE, DEFEATED, FINISHED, LOBBY, VICTOR


def make_reconciler(store, ledger=None):
    return Reconciler(ledger if ledger is not None else OrderLedger(), store, GAME_ID)


class TestClassification:
    """Test change detection between two snapshots."""

    def test_turn_changed(self):
        change = SnapshotChange.between(make_snapshot(turn=3), make_snapshot(turn=4))
        assert change.turn_changed
        assert not change.just_started

    def test_no_change(self):
        change = SnapshotChange.between(make_snapshot(turn=3), make_snapshot(turn=3))
        assert not change.any

    def test_just_started(self):
        change = SnapshotChange.between(
            make_snapshot(turn=1, status="waiting"), make_snapshot(turn=1)
        )
        assert change.just_started

    def test_just_eliminated(self):
        change = SnapshotChange.between(
            make_snapshot(turn=3), make_snapshot(turn=4, isEliminated=True, isObserver=True)
        )
        assert change.just_eliminated

    def test_just_won_and_ended(self):
        change = SnapshotChange.between(
            make_snapshot(turn=8), make_snapshot(turn=8, status="finished", isVictor=True)
        )
        assert change.just_won
        assert change.game_just_ended
        assert not change.turn_changed


class TestDecide:
    """Test first-match transition resolution."""

    def test_turn_advanced_summarizes_previous_turn(self):
        transition = decide(make_snapshot(turn=3), make_snapshot(turn=4), ACTIVE)

        assert transition.kind == TransitionKind.TURN_ADVANCED
        assert transition.lifecycle == ACTIVE
        assert transition.summary_turn == 3
        assert not transition.game_over

    def test_game_started_opens_first_turn(self):
        """Test that leaving the lobby plays turn 1 with no previous-turn summary."""
        transition = decide(make_snapshot(turn=1, status="waiting"), make_snapshot(turn=1), LOBBY)

        assert transition.kind == TransitionKind.GAME_STARTED
        assert transition.lifecycle == ACTIVE
        assert transition.summary_turn == 1
        assert transition.opening
        assert not transition.game_over

    def test_only_game_start_is_an_opening(self):
        transition = decide(make_snapshot(turn=3), make_snapshot(turn=4), ACTIVE)
        assert not transition.opening

    def test_eliminated_summarizes_current_turn(self):
        transition = decide(
            make_snapshot(turn=5), make_snapshot(turn=6, isEliminated=True), ACTIVE
        )

        assert transition.kind == TransitionKind.ELIMINATED
        assert transition.lifecycle == DEFEATED
        assert transition.summary_turn == 6
        assert transition.game_over

    def test_won_summarizes_current_turn(self):
        transition = decide(
            make_snapshot(turn=9), make_snapshot(turn=9, status="finished", isVictor=True), ACTIVE
        )

        assert transition.kind == TransitionKind.WON
        assert transition.lifecycle == VICTOR
        assert transition.summary_turn == 9

    def test_elimination_beats_victory(self):
        """Test that simultaneous elimination and victory resolves to defeat."""
        transition = decide(
            make_snapshot(turn=9),
            make_snapshot(turn=9, status="finished", isVictor=True, isEliminated=True),
            ACTIVE,
        )
        assert transition.lifecycle == DEFEATED

    def test_observer_turn_is_lightweight(self):
        transition = decide(
            make_snapshot(turn=6, isEliminated=True), make_snapshot(turn=7, isEliminated=True), DEFEATED
        )

        assert transition.kind == TransitionKind.OBSERVER_TURN
        assert transition.lifecycle == DEFEATED
        assert not transition.shows_summary

    def test_observer_sees_game_end(self):
        transition = decide(
            make_snapshot(turn=7, isEliminated=True),
            make_snapshot(turn=7, status="finished", isEliminated=True),
            DEFEATED,
        )
        assert transition.lifecycle == FINISHED
        assert not transition.shows_summary

    def test_game_ended_without_turn_change(self):
        """Test that a finished game summarizes its current turn."""
        transition = decide(make_snapshot(turn=9), make_snapshot(turn=9, status="finished"), ACTIVE)

        assert transition.kind == TransitionKind.TURN_ADVANCED
        assert transition.lifecycle == FINISHED
        assert transition.summary_turn == 9
        assert transition.game_over

    def test_lifecycle_from_snapshot(self):
        assert lifecycle_for(make_snapshot(status="waiting")) == LOBBY
        assert lifecycle_for(make_snapshot()) == ACTIVE
        assert lifecycle_for(make_snapshot(isEliminated=True)) == DEFEATED
        assert lifecycle_for(make_snapshot(status="finished", isVictor=True)) == FINISHED


class TestReconciler:
    """Test side effects of applying snapshots."""

    def test_turn_advance_evicts_and_resets(self, store):
        """Test turns 3 then 4: record for 3 gone and ledger empty."""
        ledger = OrderLedger()
        reconciler = make_reconciler(store, ledger)
        reconciler.apply(make_snapshot(turn=3, credits=50))
        ledger.add_build(1, "building", "mining", 10)
        store.save(GAME_ID, 3, ledger)

        transition = reconciler.apply(make_snapshot(turn=4, credits=45))

        assert transition.change.turn_changed
        assert store.load(GAME_ID, 3) is None
        assert ledger.is_empty
        assert ledger.speculative_credits == 45

    def test_listeners_run_after_reset(self, store):
        ledger = OrderLedger()
        reconciler = make_reconciler(store, ledger)
        reconciler.apply(make_snapshot(turn=3, credits=50))
        ledger.add_build(1, "building", "mining", 10)
        seen = []
        reconciler.add_listener(lambda snapshot, t: seen.append((snapshot.turn_number, len(ledger))))

        reconciler.apply(make_snapshot(turn=4))

        assert seen == [(4, 0)]

    def test_same_turn_rebases_credits(self, store):
        ledger = OrderLedger()
        reconciler = make_reconciler(store, ledger)
        reconciler.apply(make_snapshot(turn=3, credits=50))
        ledger.add_build(1, "building", "mining", 10)

        transition = reconciler.apply(make_snapshot(turn=3, credits=60))

        assert transition.kind == TransitionKind.NONE
        assert len(ledger.builds) == 1
        assert ledger.speculative_credits == 50

    def test_initial_load_restores_staged_orders(self, store):
        staged = OrderLedger(server_credits=50)
        staged.add_build(2, "building", "mining", 10)
        store.save(GAME_ID, 3, staged)
        store.save(GAME_ID, 2, staged)
        ledger = OrderLedger()

        transition = make_reconciler(store, ledger).apply(make_snapshot(turn=3, credits=60))

        assert transition.kind == TransitionKind.INITIAL
        assert transition.lifecycle == ACTIVE
        assert len(ledger.builds) == 1
        assert ledger.speculative_credits == 50
        assert store.staged_turns(GAME_ID) == [3]

    def test_initial_load_summary_when_behind(self, store):
        store.set_last_seen_turn(GAME_ID, 2)

        transition = make_reconciler(store).apply(make_snapshot(turn=4))

        assert transition.summary_turn == 3

    def test_initial_load_no_summary_when_current(self, store):
        store.set_last_seen_turn(GAME_ID, 4)
        assert not make_reconciler(store).apply(make_snapshot(turn=4)).shows_summary

    def test_initial_load_no_summary_without_marker(self, store):
        assert not make_reconciler(store).apply(make_snapshot(turn=4)).shows_summary

    def test_marker_updated_after_apply(self, store):
        reconciler = make_reconciler(store)
        reconciler.apply(make_snapshot(turn=3))
        reconciler.apply(make_snapshot(turn=4))

        assert store.get_last_seen_turn(GAME_ID) == 4

    def test_stale_snapshot_discarded(self, store):
        reconciler = make_reconciler(store)
        reconciler.apply(make_snapshot(turn=4))

        transition = reconciler.apply(make_snapshot(turn=3))

        assert transition.kind == TransitionKind.STALE
        assert reconciler.snapshot.turn_number == 4

    def test_wrong_game_rejected(self, store):
        reconciler = Reconciler(OrderLedger(), store, game_id=99)
        with pytest.raises(ReconciliationError):
            reconciler.apply(make_snapshot())
        assert reconciler.snapshot is None

    def test_local_rename(self, store):
        reconciler = make_reconciler(store)
        reconciler.apply(make_snapshot())

        reconciler.rename_planet_locally(2, "New Hope")

        assert reconciler.snapshot.planet(2).name == "New Hope"
        reconciler.apply(make_snapshot())
        assert reconciler.snapshot.planet(2).name == "Outpost"


class TestRefresh:
    """Test fetch failure and ordering."""

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_state(self, store):
        reconciler = make_reconciler(store)
        reconciler.apply(make_snapshot(turn=3))

        async def failing_fetch():
            raise ReconciliationError("network down")

        with pytest.raises(ReconciliationError):
            await reconciler.refresh(failing_fetch)

        assert reconciler.snapshot.turn_number == 3
        assert reconciler.lifecycle == ACTIVE

    @pytest.mark.asyncio
    async def test_out_of_order_fetch_discarded(self, store):
        """Test that an older fetch finishing last does not overwrite a newer one."""
        reconciler = make_reconciler(store)
        reconciler.apply(make_snapshot(turn=3))
        slow_gate = asyncio.Event()

        async def slow_fetch():
            await slow_gate.wait()
            return make_snapshot(turn=4, credits=1)

        async def fast_fetch():
            return make_snapshot(turn=4, credits=2)

        slow = asyncio.create_task(reconciler.refresh(slow_fetch))
        await asyncio.sleep(0)
        fast_transition = await reconciler.refresh(fast_fetch)
        slow_gate.set()
        slow_transition = await slow

        assert fast_transition.kind == TransitionKind.TURN_ADVANCED
        assert slow_transition.kind == TransitionKind.STALE
        assert reconciler.snapshot.credits == 2
