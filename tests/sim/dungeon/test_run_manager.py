"""Tests for RunManager -- the run state machine and its ledger calls."""

import asyncio
import logging

import pytest

from dungeon_gems.config import EndRunFailurePolicy, GameConfig, MonsterResolution
from dungeon_gems.errors import InvalidTransition, LedgerUnavailable
from dungeon_gems.ledger.memory import InMemoryLedger
from dungeon_gems.sim.core.entities import BaselineStats
from dungeon_gems.sim.core.session import CardState, CombatResult, CombatTurn, RunState
from dungeon_gems.sim.dungeon.run_manager import RunManager

FLAT = GameConfig(monster_resolution=MonsterResolution.FLAT)
TIERED = GameConfig(monster_resolution=MonsterResolution.TIERED)

# Combat draws: Cave Rat with 1 HP, then hit/miss checks and damage rolls.
CAVE_RAT = [0.0, 0.0]
HIT = 0.0
MISS = 0.99


def run(coro):
    return asyncio.run(coro)


def _manager(scripted_rng, draws, ledger=None, config=None, baseline=None):
    return RunManager(ledger, scripted_rng(draws), config=config, baseline=baseline)


class TestStart:
    def test_start_enters_room_one(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        session = run(manager.start())
        assert session.state is RunState.IN_PROGRESS
        assert session.current_room == 1
        assert len(session.room_cards) == 4
        assert all(c.state is CardState.HIDDEN for c in session.room_cards)
        assert session.player.hp == session.player.max_hp == 4
        assert session.player.gems == 0

    def test_start_records_run_on_ledger(self, scripted_rng, room, ledger, store):
        session = run(_manager(scripted_rng, room(), ledger=ledger).start())
        assert session.run_handle in store.runs
        assert store.runs[session.run_handle].address == "0xplayer"

    def test_start_twice_rejected(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        with pytest.raises(InvalidTransition):
            run(manager.start())

    def test_start_log(self, scripted_rng, room):
        session = run(_manager(scripted_rng, room()).start())
        assert session.log[0].message.startswith("You enter the dark dungeon")
        assert session.log[1].message == "Starting stats: 4 HP, 1 ATK, 1 DEF"


class TestScenarios:
    @pytest.mark.parametrize("config", [FLAT, TIERED])
    def test_weak_monster_is_blocked(self, scripted_rng, room, config):
        manager = _manager(scripted_rng, room(("monster", 1)), config=config)
        run(manager.start())
        session = run(manager.select_card(0))
        assert session.last_outcome.defeated
        assert session.last_outcome.kind == "monster_blocked"
        assert session.player.hp == 4
        assert session.state is RunState.AWAITING_DECISION
        assert session.monsters_defeated_this_room == 1

    def test_strong_monster_breaks_through(self, scripted_rng, room):
        manager = _manager(scripted_rng, room(("monster", 3)), config=FLAT)
        run(manager.start())
        session = run(manager.select_card(0))
        assert session.player.hp == 2
        assert "You lose 2 HP" in session.last_outcome.message
        assert not session.last_outcome.defeated
        assert session.state is RunState.AWAITING_DECISION

    def test_trap_at_one_hp_kills(self, scripted_rng, room):
        manager = _manager(
            scripted_rng, room(("trap", None)), baseline=BaselineStats(max_hp=1),
        )
        run(manager.start())
        session = run(manager.select_card(0))
        assert session.player.hp == 0
        assert session.state is RunState.DIED

    def test_death_never_awaits_decision(self, scripted_rng, room):
        manager = _manager(
            scripted_rng, room(("monster", 3)), config=FLAT,
            baseline=BaselineStats(max_hp=2, defense=0),
        )
        run(manager.start())
        session = run(manager.select_card(0))
        assert session.state is RunState.DIED
        assert session.player.hp == 0
        with pytest.raises(InvalidTransition):
            run(manager.continue_run())
        with pytest.raises(InvalidTransition):
            run(manager.exit_run())

    def test_treasure_then_exit(self, scripted_rng, room, ledger, store):
        manager = _manager(scripted_rng, room(("treasure", 30)), ledger=ledger)
        run(manager.start())
        session = run(manager.select_card(0))
        assert session.player.gems == 30
        session = run(manager.exit_run())
        assert session.state is RunState.COMPLETED
        assert store.events[-1]["success"] is True
        assert store.events[-1]["gemsCollected"] == 30
        assert store.events[-1]["roomsReached"] == 1


class TestCardSelection:
    def test_only_one_card_per_room(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        run(manager.select_card(0))
        with pytest.raises(InvalidTransition):
            run(manager.select_card(1))

    def test_index_out_of_range(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        with pytest.raises(IndexError):
            run(manager.select_card(4))

    def test_select_before_start_rejected(self, scripted_rng):
        with pytest.raises(InvalidTransition):
            run(_manager(scripted_rng, []).select_card(0))

    def test_other_cards_stay_hidden(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        session = run(manager.select_card(2))
        assert session.room_cards[2].state is CardState.RESOLVED
        assert [c.state for i, c in enumerate(session.room_cards) if i != 2] == [CardState.HIDDEN] * 3

    def test_snapshot_is_a_copy(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        session = run(manager.start())
        session.player.gems = 999
        session.room_cards[0].reveal()
        assert manager.snapshot().player.gems == 0
        assert manager.snapshot().room_cards[0].state is CardState.HIDDEN


class TestCombatPath:
    def test_monster_card_opens_fight(self, scripted_rng, room):
        manager = _manager(scripted_rng, room(("monster", 2)) + CAVE_RAT)
        run(manager.start())
        session = run(manager.select_card(0))
        assert session.in_combat
        assert session.state is RunState.IN_PROGRESS
        assert session.combat.turn is CombatTurn.MONSTER
        assert session.combat.monster.name == "Cave Rat"
        assert session.room_cards[0].state is CardState.REVEALED

    def test_tiered_fights_only_unblocked_monsters(self, scripted_rng, room):
        manager = _manager(scripted_rng, room(("monster", 3)) + CAVE_RAT, config=TIERED)
        run(manager.start())
        assert run(manager.select_card(0)).in_combat

    def test_victory_awaits_decision(self, scripted_rng, room):
        manager = _manager(scripted_rng, room(("monster", 2)) + CAVE_RAT + [HIT, 0.0, HIT])
        run(manager.start())
        run(manager.select_card(0))
        run(manager.monster_attack())
        session = run(manager.player_attack())
        assert session.combat.result is CombatResult.VICTORY
        session = run(manager.finish_combat())
        assert session.state is RunState.AWAITING_DECISION
        assert not session.in_combat
        assert session.last_outcome.kind == "combat_victory"
        assert session.monsters_defeated_this_room == 1
        assert session.room_cards[0].state is CardState.RESOLVED
        # Cave Rat hits for 1, defense 1 absorbs it.
        assert session.player.hp == 4

    def test_defeat_kills_the_run(self, scripted_rng, room, ledger, store):
        manager = _manager(
            scripted_rng, room(("monster", 2)) + CAVE_RAT + [HIT, 0.0],
            ledger=ledger, baseline=BaselineStats(max_hp=1, defense=0),
        )
        run(manager.start())
        run(manager.select_card(0))
        run(manager.monster_attack())
        session = run(manager.finish_combat())
        assert session.state is RunState.DIED
        assert session.player.hp == 0
        assert session.last_outcome.kind == "combat_defeat"
        assert store.events[-1]["success"] is False

    def test_cannot_continue_mid_fight(self, scripted_rng, room):
        manager = _manager(scripted_rng, room(("monster", 2)) + CAVE_RAT)
        run(manager.start())
        run(manager.select_card(0))
        with pytest.raises(InvalidTransition):
            run(manager.continue_run())
        with pytest.raises(InvalidTransition, match="not your turn"):
            run(manager.player_attack())
        with pytest.raises(InvalidTransition):
            run(manager.finish_combat())

    def test_resolve_combat_plays_to_the_end(self, scripted_rng, room):
        draws = room(("monster", 1)) + CAVE_RAT + [MISS, MISS, MISS, HIT]
        manager = _manager(scripted_rng, draws)
        run(manager.start())
        run(manager.select_card(0))
        session = run(manager.resolve_combat())
        assert session.state is RunState.AWAITING_DECISION
        assert session.last_outcome.kind == "combat_victory"

    def test_combat_actions_without_fight_rejected(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        with pytest.raises(InvalidTransition, match="no fight is open"):
            run(manager.monster_attack())
        with pytest.raises(InvalidTransition):
            run(manager.resolve_combat())

    def test_flat_resolution_warns_once(self, scripted_rng, room, caplog):
        draws = room(("monster", 1)) + room(("monster", 1))
        manager = _manager(scripted_rng, draws, config=FLAT)
        with caplog.at_level(logging.WARNING):
            run(manager.start())
            run(manager.select_card(0))
            run(manager.continue_run())
            run(manager.select_card(0))
        assert sum("deprecated" in r.message for r in caplog.records) == 1


class TestProgression:
    def test_continue_folds_kills_and_deals_new_room(self, scripted_rng, room, ledger, store):
        draws = room(("monster", 1)) + room(("trap", None))
        manager = _manager(scripted_rng, draws, ledger=ledger, config=FLAT)
        run(manager.start())
        run(manager.select_card(0))
        session = run(manager.continue_run())
        assert session.state is RunState.IN_PROGRESS
        assert session.current_room == 2
        assert session.monsters_defeated_total == 1
        assert session.monsters_defeated_this_room == 0
        assert session.selected_index is None
        assert session.room_cards[0].state is CardState.HIDDEN
        assert store.runs[session.run_handle].rooms == 2
        assert session.log[-1].message == "Survived Room 1! Entering Room 2..."

    def test_continue_requires_decision_state(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        with pytest.raises(InvalidTransition, match="Cannot continue_run while in_progress"):
            run(manager.continue_run())

    def test_exit_reports_depth_and_gems(self, scripted_rng, room, ledger, store):
        draws = room(("treasure", 20)) + room(("treasure", 10))
        manager = _manager(scripted_rng, draws, ledger=ledger)
        run(manager.start())
        run(manager.select_card(0))
        run(manager.continue_run())
        run(manager.select_card(0))
        session = run(manager.exit_run())
        assert session.state is RunState.COMPLETED
        assert session.player.gems == 30
        assert store.events[-1]["roomsReached"] == 2
        assert store.runs[session.run_handle].closed


class TestReset:
    def test_reset_requires_terminal_state(self, scripted_rng, room):
        manager = _manager(scripted_rng, room())
        run(manager.start())
        with pytest.raises(InvalidTransition):
            run(manager.reset())

    def test_reset_keeps_only_baseline(self, scripted_rng, room):
        baseline = BaselineStats(max_hp=5, attack=2, defense=1)
        manager = _manager(scripted_rng, room(("treasure", 30)), baseline=baseline)
        run(manager.start())
        run(manager.select_card(0))
        run(manager.exit_run())
        session = run(manager.reset())
        assert session.state is RunState.NOT_STARTED
        assert session.player.gems == 0
        assert session.current_room == 1
        assert session.room_cards == []
        assert session.player.max_hp == 5
        assert session.player.attack == 2

    def test_reset_with_new_baseline(self, scripted_rng, room):
        manager = _manager(scripted_rng, room(("trap", None)), baseline=BaselineStats(max_hp=1))
        run(manager.start())
        run(manager.select_card(0))
        session = run(manager.reset(BaselineStats(max_hp=7)))
        assert session.player.hp == 7


class TestLedgerFailures:
    def test_failed_advance_keeps_local_progress(self, scripted_rng, room, ledger, store):
        manager = _manager(scripted_rng, room() + room(), ledger=ledger)
        run(manager.start())
        run(manager.select_card(0))
        store.fail_on.add("submit_advance_room")
        with pytest.raises(LedgerUnavailable) as exc_info:
            run(manager.continue_run())
        assert exc_info.value.operation == "submit_advance_room"
        assert exc_info.value.session.current_room == 2
        assert manager.state is RunState.IN_PROGRESS
        assert manager.snapshot().current_room == 2
        assert store.runs[manager.snapshot().run_handle].rooms == 1

    def test_failed_start_keeps_run_playable(self, scripted_rng, room, ledger, store):
        store.fail_on.add("submit_start_run")
        manager = _manager(scripted_rng, room(("treasure", 10)), ledger=ledger)
        with pytest.raises(LedgerUnavailable):
            run(manager.start())
        assert manager.state is RunState.IN_PROGRESS
        assert manager.snapshot().run_handle is None
        run(manager.select_card(0))
        session = run(manager.exit_run())
        assert session.state is RunState.COMPLETED
        assert store.events == []

    def test_transport_errors_are_wrapped(self, scripted_rng, room, ledger):
        async def broken(*args):
            raise ConnectionError("socket closed")

        ledger.submit_start_run = broken
        manager = _manager(scripted_rng, room(), ledger=ledger)
        with pytest.raises(LedgerUnavailable, match="socket closed") as exc_info:
            run(manager.start())
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_failure_is_logged_in_run_log(self, scripted_rng, room, ledger, store):
        store.fail_on.add("submit_start_run")
        manager = _manager(scripted_rng, room(), ledger=ledger)
        with pytest.raises(LedgerUnavailable):
            run(manager.start())
        assert manager.snapshot().log[-1].kind == "ledger"

    def test_no_ledger_plays_offline(self, scripted_rng, room):
        manager = _manager(scripted_rng, room() + room())
        run(manager.start())
        run(manager.select_card(0))
        session = run(manager.continue_run())
        assert session.run_handle is None
        assert session.current_room == 2


class TestEndRunPolicies:
    def _finish(self, scripted_rng, room, ledger, store, policy):
        config = GameConfig(end_run_failure_policy=policy)
        manager = _manager(scripted_rng, room(("treasure", 20)), ledger=ledger, config=config)
        run(manager.start())
        run(manager.select_card(0))
        store.fail_on.add("submit_end_run")
        return manager

    def test_surface_raises_after_completing(self, scripted_rng, room, ledger, store):
        manager = self._finish(scripted_rng, room, ledger, store, EndRunFailurePolicy.SURFACE)
        with pytest.raises(LedgerUnavailable):
            run(manager.exit_run())
        assert manager.state is RunState.COMPLETED
        assert manager.pending == []

    def test_discard_drops_submission(self, scripted_rng, room, ledger, store):
        manager = self._finish(scripted_rng, room, ledger, store, EndRunFailurePolicy.DISCARD)
        session = run(manager.exit_run())
        assert session.state is RunState.COMPLETED
        assert manager.pending == []
        assert store.events == []

    def test_queue_then_flush(self, scripted_rng, room, ledger, store):
        manager = self._finish(scripted_rng, room, ledger, store, EndRunFailurePolicy.QUEUE)
        run(manager.exit_run())
        assert len(manager.pending) == 1
        assert manager.pending[0].gems_collected == 20

        assert run(manager.flush_pending()) == 0
        assert len(manager.pending) == 1

        store.fail_on.clear()
        assert run(manager.flush_pending()) == 1
        assert manager.pending == []
        assert store.events[-1]["success"] is True
        assert store.events[-1]["gemsCollected"] == 20


class TestReentrancy:
    def test_concurrent_selection_rejected(self, scripted_rng, room):
        config = GameConfig(pacing_delay=0.01)
        manager = _manager(scripted_rng, room(), config=config)

        async def scenario():
            await manager.start()
            return await asyncio.gather(
                manager.select_card(0), manager.select_card(1), return_exceptions=True,
            )

        first, second = run(scenario())
        assert first.room_cards[0].state is CardState.RESOLVED
        assert isinstance(second, InvalidTransition)
        assert "another action is still in progress" in str(second)
        assert manager.snapshot().room_cards[1].state is CardState.HIDDEN

    def test_slow_ledger_blocks_second_action(self, scripted_rng, room, store):
        manager = _manager(
            scripted_rng, room() + room(), ledger=InMemoryLedger(store, "0xslow", latency=0.01),
        )

        async def scenario():
            await manager.start()
            await manager.select_card(0)
            return await asyncio.gather(
                manager.continue_run(), manager.exit_run(), return_exceptions=True,
            )

        advanced, rejected = run(scenario())
        assert advanced.current_room == 2
        assert isinstance(rejected, InvalidTransition)
