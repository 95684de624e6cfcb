"""Tests for CombatEngine -- turn order, hits, misses, and results."""

import pytest

from dungeon_gems.config import GameConfig
from dungeon_gems.errors import InvalidTransition
from dungeon_gems.sim.core.entities import Monster, PlayerStats
from dungeon_gems.sim.core.session import CombatLogKind, CombatResult, CombatTurn
from dungeon_gems.sim.dungeon.combat import CombatEngine

HIT = 0.0
MISS = 0.99


@pytest.fixture
def player():
    return PlayerStats(hp=4, max_hp=4, attack=1, defense=1)


def _goblin(hp=2, damage=(2, 2), hit_chance=0.6):
    return Monster(name="Goblin", hp=hp, max_hp=hp, damage_range=damage, hit_chance=hit_chance)


def _engine(player, scripted_rng, draws=()):
    return CombatEngine(player, scripted_rng(draws))


class TestStartCombat:
    def test_monster_acts_first(self, player, scripted_rng):
        session = _engine(player, scripted_rng).start_combat(_goblin())
        assert session.in_combat
        assert session.turn is CombatTurn.MONSTER
        assert session.result is CombatResult.NONE
        assert session.player_hp == 4
        assert session.log[0].kind is CombatLogKind.START

    def test_cannot_start_twice(self, player, scripted_rng):
        engine = _engine(player, scripted_rng)
        engine.start_combat(_goblin())
        with pytest.raises(InvalidTransition):
            engine.start_combat(_goblin())

    def test_engine_copies_monster(self, player, scripted_rng):
        goblin = _goblin()
        engine = _engine(player, scripted_rng, [HIT])
        engine.start_combat(goblin)
        assert engine.snapshot().monster is not goblin

    def test_idle_snapshot(self, player, scripted_rng):
        engine = _engine(player, scripted_rng)
        assert engine.state_name == "idle"
        assert not engine.snapshot().in_combat


class TestTurnAlternation:
    def test_player_cannot_act_on_monster_turn(self, player, scripted_rng):
        engine = _engine(player, scripted_rng)
        engine.start_combat(_goblin())
        with pytest.raises(InvalidTransition, match="not your turn"):
            engine.player_attack()

    def test_monster_hit_flips_to_player(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [HIT, 0.0])
        engine.start_combat(_goblin())
        session = engine.monster_attack()
        assert session.turn is CombatTurn.PLAYER
        assert session.player_hp == 3

    def test_monster_miss_flips_to_player(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS])
        engine.start_combat(_goblin())
        session = engine.monster_attack()
        assert session.turn is CombatTurn.PLAYER
        assert session.player_hp == 4
        assert session.log[-1].kind is CombatLogKind.MISS

    def test_monster_cannot_act_twice(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS])
        engine.start_combat(_goblin())
        engine.monster_attack()
        with pytest.raises(InvalidTransition):
            engine.monster_attack()

    def test_player_hit_flips_to_monster(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS, HIT])
        engine.start_combat(_goblin(hp=2))
        engine.monster_attack()
        session = engine.player_attack()
        assert session.turn is CombatTurn.MONSTER
        assert session.monster.hp == 1

    def test_player_miss_flips_to_monster(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS, 0.8])
        engine.start_combat(_goblin(hp=2))
        engine.monster_attack()
        session = engine.player_attack()
        assert session.turn is CombatTurn.MONSTER
        assert session.monster.hp == 2
        assert session.log[-1].kind is CombatLogKind.MISS


class TestDamage:
    def test_defense_mitigates_roll(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [HIT, 0.0])
        engine.start_combat(_goblin(damage=(1, 3)))
        session = engine.monster_attack()
        assert session.log[-1].roll == 1
        assert session.log[-1].damage == 0
        assert session.player_hp == 4

    def test_top_of_damage_range(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [HIT, 0.999])
        engine.start_combat(_goblin(damage=(1, 3)))
        session = engine.monster_attack()
        assert session.log[-1].roll == 3
        assert session.player_hp == 2

    def test_player_damage_is_flat_attack(self, scripted_rng):
        strong = PlayerStats(hp=4, max_hp=4, attack=3, defense=1)
        engine = CombatEngine(strong, scripted_rng([MISS, HIT]))
        engine.start_combat(_goblin(hp=5))
        engine.monster_attack()
        assert engine.player_attack().monster.hp == 2

    def test_player_hit_chance_is_configurable(self, player, scripted_rng):
        engine = CombatEngine(player, scripted_rng([MISS, 0.5]), GameConfig(player_hit_chance=0.4))
        engine.start_combat(_goblin())
        engine.monster_attack()
        assert engine.player_attack().log[-1].kind is CombatLogKind.MISS


class TestResults:
    def test_victory_keeps_turn_and_locks_actions(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS, HIT])
        engine.start_combat(_goblin(hp=1))
        engine.monster_attack()
        session = engine.player_attack()
        assert session.result is CombatResult.VICTORY
        assert session.turn is CombatTurn.PLAYER
        assert session.monster.hp == 0
        assert engine.state_name == "resolved (victory)"
        with pytest.raises(InvalidTransition, match="the fight is over"):
            engine.player_attack()
        with pytest.raises(InvalidTransition):
            engine.monster_attack()

    def test_defeat_when_player_hp_hits_zero(self, scripted_rng):
        frail = PlayerStats(hp=1, max_hp=4, attack=1, defense=0)
        engine = CombatEngine(frail, scripted_rng([HIT, 0.0]))
        engine.start_combat(_goblin(damage=(3, 3)))
        session = engine.monster_attack()
        assert session.result is CombatResult.DEFEAT
        assert session.player_hp == 0
        assert session.log[-1].kind is CombatLogKind.DEFEAT

    def test_end_combat_requires_result(self, player, scripted_rng):
        engine = _engine(player, scripted_rng)
        engine.start_combat(_goblin())
        with pytest.raises(InvalidTransition):
            engine.end_combat()

    def test_end_combat_without_fight_raises(self, player, scripted_rng):
        with pytest.raises(InvalidTransition):
            _engine(player, scripted_rng).end_combat()

    def test_end_combat_returns_to_idle(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS, HIT])
        engine.start_combat(_goblin(hp=1))
        engine.monster_attack()
        engine.player_attack()
        final = engine.end_combat()
        assert not final.in_combat
        assert final.result is CombatResult.VICTORY
        assert engine.state_name == "idle"
        assert not engine.active

    def test_engine_does_not_write_player_hp(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [HIT, 0.0])
        engine.start_combat(_goblin())
        engine.monster_attack()
        assert player.hp == 4

    def test_actions_fail_when_idle(self, player, scripted_rng):
        engine = _engine(player, scripted_rng)
        with pytest.raises(InvalidTransition, match="Cannot player_attack while idle"):
            engine.player_attack()
        with pytest.raises(InvalidTransition, match="Cannot monster_attack while idle"):
            engine.monster_attack()

    def test_actions_fail_after_end_combat(self, player, scripted_rng):
        engine = _engine(player, scripted_rng, [MISS, HIT])
        engine.start_combat(_goblin(hp=1))
        engine.monster_attack()
        engine.player_attack()
        engine.end_combat()
        with pytest.raises(InvalidTransition, match="while idle"):
            engine.monster_attack()
        with pytest.raises(InvalidTransition, match="Cannot end_combat while idle"):
            engine.end_combat()
