"""Run manager: drives one run room by room from entry fee to exit or death.

State machine::

    not_started --start--> in_progress --select_card--> awaiting_decision
                               ^   |                      |        |
                               |   +--(hp <= 0)--> died   |       exit_run
                               +------continue_run--------+        v
                                                               completed

Monster cards may open a fight (see :class:`MonsterResolution`); the run
stays ``in_progress`` until ``finish_combat`` applies the result.

Ledger policy: local state always advances first and the ledger call is
made afterwards.  A failed call raises :class:`LedgerUnavailable` carrying
the advanced snapshot; nothing is rolled back.  Retrying a failed room
advance is left to the caller.  A failed close-run follows
``GameConfig.end_run_failure_policy``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator

from dungeon_gems.config import EndRunFailurePolicy, GameConfig, MonsterResolution
from dungeon_gems.errors import InvalidTransition, LedgerUnavailable
from dungeon_gems.sim.core.entities import BaselineStats, PlayerStats
from dungeon_gems.sim.core.session import (
    CardCategory,
    CardState,
    CombatResult,
    CombatTurn,
    EncounterCard,
    EncounterOutcome,
    RunLogEntry,
    RunSession,
    RunState,
)
from dungeon_gems.sim.dungeon.combat import CombatEngine
from dungeon_gems.sim.dungeon.encounters import generate_room
from dungeon_gems.sim.dungeon.monsters import MONSTER_TABLE, MonsterTemplate, generate_monster
from dungeon_gems.sim.dungeon.resolver import resolve_card

if TYPE_CHECKING:
    from dungeon_gems.ledger.client import LedgerClient
    from dungeon_gems.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)

_MAX_COMBAT_EXCHANGES = 500


@dataclass
class PendingEndRun:
    """A close-run submission kept for retry under the ``queue`` policy."""

    run_handle: str
    survived: bool
    gems_collected: int


class RunManager:
    """Owns one :class:`RunSession` and every transition applied to it.

    Parameters
    ----------
    ledger:
        Ledger client for entry fee, room advances, and close-out.  ``None``
        plays without a ledger (dev mode): every submission is skipped.
    rng:
        Master RNG.  Forked into ``"rooms"`` and ``"combat"`` streams.
    config:
        Game rules.
    baseline:
        Caller-owned character stats.  Defaults to 4 HP / 1 ATK / 1 DEF.
    monster_table:
        Templates fights are rolled from.
    """

    def __init__(
        self,
        ledger: LedgerClient | None,
        rng: GameRNG,
        config: GameConfig | None = None,
        baseline: BaselineStats | None = None,
        monster_table: tuple[MonsterTemplate, ...] = MONSTER_TABLE,
    ) -> None:
        self.ledger = ledger
        self.rng = rng
        self.config = config or GameConfig()
        self.baseline = baseline or BaselineStats()
        self.monster_table = monster_table

        self._room_rng = rng.fork("rooms")
        self._combat_rng = rng.fork("combat")
        self._session = self._fresh_session()
        self._combat: CombatEngine | None = None
        self._busy = False
        self._warned_flat = False
        self.pending: list[PendingEndRun] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._session.state

    def snapshot(self) -> RunSession:
        """Return a deep copy of the current session."""
        return self._session.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> RunSession:
        """Enter the dungeon: room 1, full HP, no gems, entry fee submitted."""
        with self._exclusive("start"):
            self._require_state("start", RunState.NOT_STARTED)
            session = self._session
            session.player = PlayerStats.from_baseline(self.baseline)
            session.current_room = 1
            session.monsters_defeated_this_room = 0
            session.monsters_defeated_total = 0
            session.run_handle = None
            session.last_outcome = None
            self._deal_room()
            session.state = RunState.IN_PROGRESS
            self._log("start", "You enter the dark dungeon. The air is thick with mystery...")
            self._log(
                "start",
                f"Starting stats: {session.player.max_hp} HP, "
                f"{session.player.attack} ATK, {session.player.defense} DEF",
            )
            logger.info("Run started at room 1 with %d HP", session.player.hp)

            if self.ledger is not None:
                session.run_handle = await self._call_ledger(
                    "submit_start_run",
                    self.ledger.submit_start_run,
                    self.baseline.max_hp,
                    self.baseline.attack,
                )
                self._log("ledger", "Entry fee paid.")
            return self.snapshot()

    async def select_card(self, index: int) -> RunSession:
        """Flip card *index* and resolve it (or open a fight for a monster)."""
        with self._exclusive("select_card"):
            self._require_state("select_card", RunState.IN_PROGRESS)
            session = self._session
            if session.in_combat:
                raise InvalidTransition("select_card", self._state_label(), "finish the fight first")
            if session.selected_index is not None:
                raise InvalidTransition(
                    "select_card", self._state_label(), "a card was already chosen in this room",
                )
            if not 0 <= index < len(session.room_cards):
                raise IndexError(
                    f"card index {index} out of range for {len(session.room_cards)} cards"
                )
            card = session.room_cards[index]
            if card.state is not CardState.HIDDEN:
                raise InvalidTransition(
                    "select_card", self._state_label(), f"card {index} is {card.state.value}",
                )

            card.reveal()
            session.selected_index = index
            if self.config.pacing_delay > 0:
                await asyncio.sleep(self.config.pacing_delay)

            if card.category is CardCategory.MONSTER and self._engages_combat(card):
                self._engage(card)
                return self.snapshot()

            outcome = resolve_card(
                card,
                session.player.defense,
                session.player.hp,
                session.player.max_hp,
                self.config,
            )
            await self._apply_outcome(card, outcome)
            return self.snapshot()

    async def continue_run(self) -> RunSession:
        """Go deeper: bank this room's kills, deal the next room."""
        with self._exclusive("continue_run"):
            self._require_state("continue_run", RunState.AWAITING_DECISION)
            session = self._session
            survived_room = session.current_room
            self._fold_room_kills()
            session.current_room += 1
            self._deal_room()
            session.state = RunState.IN_PROGRESS
            self._log(
                "room",
                f"Survived Room {survived_room}! Entering Room {session.current_room}...",
            )
            logger.info("Run advanced to room %d", session.current_room)

            if self.ledger is not None and session.run_handle is not None:
                await self._call_ledger(
                    "submit_advance_room",
                    self.ledger.submit_advance_room,
                    session.run_handle,
                    session.player.hp,
                )
            else:
                self._skip_ledger("submit_advance_room")
            return self.snapshot()

    async def exit_run(self) -> RunSession:
        """Leave the dungeon alive with everything collected so far."""
        with self._exclusive("exit_run"):
            self._require_state("exit_run", RunState.AWAITING_DECISION)
            session = self._session
            self._fold_room_kills()
            session.state = RunState.COMPLETED
            self._log(
                "exit",
                f"Successfully escaped! Cleared {session.current_room} rooms "
                f"with {session.player.gems} gems!",
            )
            logger.info(
                "Run completed at room %d with %d gems",
                session.current_room, session.player.gems,
            )
            await self._close_run(survived=True)
            return self.snapshot()

    async def reset(self, baseline: BaselineStats | None = None) -> RunSession:
        """Return a finished run to ``not_started``.

        Only the baseline survives; pass *baseline* to replace it.
        """
        with self._exclusive("reset"):
            if not self._session.state.is_terminal:
                raise InvalidTransition("reset", self._state_label(), "the run has not ended")
            if baseline is not None:
                self.baseline = baseline
            self._session = self._fresh_session()
            self._combat = None
            return self.snapshot()

    # ------------------------------------------------------------------
    # Combat
    # ------------------------------------------------------------------

    async def player_attack(self) -> RunSession:
        with self._exclusive("player_attack"):
            engine = self._require_combat("player_attack")
            self._session.combat = engine.player_attack()
            return self.snapshot()

    async def monster_attack(self) -> RunSession:
        with self._exclusive("monster_attack"):
            engine = self._require_combat("monster_attack")
            self._session.combat = engine.monster_attack()
            return self.snapshot()

    async def finish_combat(self) -> RunSession:
        """Close a decided fight and apply it to the run."""
        with self._exclusive("finish_combat"):
            engine = self._require_combat("finish_combat")
            session = self._session
            hp_before = session.player.hp
            final = engine.end_combat()
            self._combat = None
            session.combat = final

            card = self._selected_card()
            name = final.monster.name if final.monster is not None else "monster"
            hp_after = final.player_hp
            hp_lost = max(0, hp_before - hp_after)
            if final.result is CombatResult.VICTORY:
                outcome = EncounterOutcome(
                    new_hp=hp_after,
                    hp_lost=hp_lost,
                    defeated=True,
                    message=f"Defeated {name}! You lost {hp_lost} HP in the fight.",
                    kind="combat_victory",
                    params={"monster": name, "hp_lost": hp_lost},
                )
            else:
                outcome = EncounterOutcome(
                    new_hp=hp_after,
                    hp_lost=hp_lost,
                    message=f"Defeated by {name}!",
                    kind="combat_defeat",
                    params={"monster": name, "hp_lost": hp_lost},
                )
            self._log("combat", outcome.message)
            await self._apply_outcome(card, outcome)
            return self.snapshot()

    async def resolve_combat(self) -> RunSession:
        """Play the open fight to the end without pacing, then finish it.

        Non-interactive callers (simulations, bots) use this instead of
        alternating ``monster_attack`` / ``player_attack`` themselves.
        """
        for _ in range(_MAX_COMBAT_EXCHANGES):
            combat = self._session.combat
            if combat is None or not combat.in_combat:
                raise InvalidTransition("resolve_combat", self._state_label(), "no fight is open")
            if combat.result is not CombatResult.NONE:
                return await self.finish_combat()
            if combat.turn is CombatTurn.MONSTER:
                await self.monster_attack()
            else:
                await self.player_attack()
        raise RuntimeError(f"combat did not finish within {_MAX_COMBAT_EXCHANGES} exchanges")

    # ------------------------------------------------------------------
    # Pending close-outs
    # ------------------------------------------------------------------

    async def flush_pending(self) -> int:
        """Retry queued close-run submissions.  Returns how many succeeded.

        Submissions that fail again stay queued.
        """
        if self.ledger is None or not self.pending:
            return 0
        remaining: list[PendingEndRun] = []
        flushed = 0
        for item in self.pending:
            try:
                await self.ledger.submit_end_run(
                    item.run_handle, item.survived, item.gems_collected,
                )
            except Exception as exc:  # ledger boundary: any transport error
                logger.warning("Retry of submit_end_run for %s failed: %s", item.run_handle, exc)
                remaining.append(item)
            else:
                flushed += 1
        self.pending = remaining
        return flushed

    # ------------------------------------------------------------------
    # Internals: resolution
    # ------------------------------------------------------------------

    def _engages_combat(self, card: EncounterCard) -> bool:
        policy = self.config.monster_resolution
        if policy is MonsterResolution.COMBAT:
            return True
        if policy is MonsterResolution.TIERED:
            return self._session.player.defense < card.magnitude
        if not self._warned_flat:
            logger.warning(
                "Flat monster resolution is deprecated; use 'combat' or 'tiered'",
            )
            self._warned_flat = True
        return False

    def _engage(self, card: EncounterCard) -> None:
        monster = generate_monster(self._combat_rng, self.monster_table)
        self._combat = CombatEngine(self._session.player, self._combat_rng, self.config)
        self._session.combat = self._combat.start_combat(monster)
        self._log(
            "combat",
            f"A {monster.name} (card ATK {card.magnitude}) blocks your path! "
            f"It has {monster.hp} HP.",
        )
        logger.debug("Room %d card %d opened combat with %s",
                     self._session.current_room, card.id, monster.name)

    async def _apply_outcome(self, card: EncounterCard, outcome: EncounterOutcome) -> None:
        session = self._session
        session.player.set_hp(outcome.new_hp)
        if outcome.gems_delta:
            session.player.add_gems(outcome.gems_delta)
        if outcome.defeated:
            session.monsters_defeated_this_room += 1
        card.mark_resolved()
        session.last_outcome = outcome
        if outcome.kind not in ("combat_victory", "combat_defeat"):
            self._log("encounter", outcome.message)
        logger.debug("Room %d card %d resolved: %s (hp=%d, gems=%d)",
                     session.current_room, card.id, outcome.kind,
                     session.player.hp, session.player.gems)

        if session.player.hp <= 0:
            session.state = RunState.DIED
            self._fold_room_kills()
            self._log(
                "death",
                f"Your adventure ends at Room {session.current_room}. "
                f"Final score: {session.player.gems} gems.",
            )
            logger.info("Run died at room %d", session.current_room)
            await self._close_run(survived=False)
        else:
            session.state = RunState.AWAITING_DECISION

    async def _close_run(self, survived: bool) -> None:
        session = self._session
        if self.ledger is None or session.run_handle is None:
            self._skip_ledger("submit_end_run")
            return
        policy = self.config.end_run_failure_policy
        try:
            await self._call_ledger(
                "submit_end_run",
                self.ledger.submit_end_run,
                session.run_handle,
                survived,
                session.player.gems,
            )
        except LedgerUnavailable:
            if policy is EndRunFailurePolicy.SURFACE:
                raise
            if policy is EndRunFailurePolicy.QUEUE:
                self.pending.append(PendingEndRun(
                    run_handle=session.run_handle,
                    survived=survived,
                    gems_collected=session.player.gems,
                ))
                logger.warning("Queued close-run for %s for retry", session.run_handle)
            else:
                logger.warning("Discarded failed close-run for %s", session.run_handle)
        else:
            self._log("ledger", f"Run recorded! Reached Room {session.current_room}.")

    # ------------------------------------------------------------------
    # Internals: helpers
    # ------------------------------------------------------------------

    def _fresh_session(self) -> RunSession:
        return RunSession(player=PlayerStats.from_baseline(self.baseline))

    def _deal_room(self) -> None:
        session = self._session
        session.room_cards = generate_room(self._room_rng, self.config)
        session.selected_index = None
        session.monsters_defeated_this_room = 0
        session.combat = None
        self._combat = None

    def _fold_room_kills(self) -> None:
        session = self._session
        session.monsters_defeated_total += session.monsters_defeated_this_room
        session.monsters_defeated_this_room = 0

    def _selected_card(self) -> EncounterCard:
        index = self._session.selected_index
        if index is None:
            raise InvalidTransition("resolve_card", self._state_label(), "no card selected")
        return self._session.room_cards[index]

    def _require_state(self, action: str, state: RunState) -> None:
        if self._session.state is not state:
            raise InvalidTransition(action, self._state_label())

    def _require_combat(self, action: str) -> CombatEngine:
        if self._combat is None or not self._combat.active:
            raise InvalidTransition(action, self._state_label(), "no fight is open")
        return self._combat

    def _state_label(self) -> str:
        label = self._session.state.value
        if self._combat is not None and self._combat.active:
            label = f"{label} ({self._combat.state_name})"
        return label

    def _log(self, kind: str, message: str) -> None:
        self._session.log.append(RunLogEntry(
            kind=kind, room=self._session.current_room, message=message,
        ))

    def _skip_ledger(self, operation: str) -> None:
        if self.ledger is None:
            logger.debug("No ledger configured; skipping %s", operation)
        else:
            logger.warning("Run has no ledger handle; skipping %s", operation)

    async def _call_ledger(
        self,
        operation: str,
        call: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        try:
            return await call(*args)
        except Exception as exc:  # ledger boundary: wrap any transport error
            detail = exc.detail if isinstance(exc, LedgerUnavailable) else str(exc)
            logger.warning("Ledger call %s failed: %s", operation, detail)
            self._log("ledger", f"Ledger call {operation} failed: {detail}")
            raise LedgerUnavailable(operation, detail, session=self.snapshot()) from exc

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if self._busy:
            raise InvalidTransition(
                action, self._state_label(), "another action is still in progress",
            )
        self._busy = True
        try:
            yield
        finally:
            self._busy = False
