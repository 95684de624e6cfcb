"""Batch runner -- plays whole runs with a play agent and collects telemetry.

Each run gets its own master seed; the agent uses the ``"agent"`` fork so
its choices never disturb room or combat rolls.  Runs can write into a
shared :class:`LedgerStore` so the resulting event log feeds the
leaderboard exactly like live play would.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable

from dungeon_gems.config import GameConfig
from dungeon_gems.errors import LedgerUnavailable
from dungeon_gems.ledger.memory import InMemoryLedger
from dungeon_gems.sim.core.rng import GameRNG
from dungeon_gems.sim.core.session import RunSession, RunState
from dungeon_gems.sim.dungeon.resolver import summarize_room
from dungeon_gems.sim.dungeon.run_manager import RunManager
from dungeon_gems.sim.play_agents.base import PlayAgent
from dungeon_gems.sim.play_agents.random_agent import RandomAgent
from dungeon_gems.sim.telemetry import RunTelemetry

if TYPE_CHECKING:
    from dungeon_gems.ledger.memory import LedgerStore

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ROOMS = 200


async def play_run(
    manager: RunManager,
    agent: PlayAgent,
    telemetry: RunTelemetry,
    max_rooms: int = _DEFAULT_MAX_ROOMS,
) -> RunTelemetry:
    """Drive *manager* from ``not_started`` to a terminal state."""

    async def attempt(call: Awaitable[RunSession]) -> RunSession:
        try:
            return await call
        except LedgerUnavailable as exc:
            telemetry.ledger_errors.append(exc.operation)
            return manager.snapshot()

    session = await attempt(manager.start())
    while not session.state.is_terminal:
        if session.state is RunState.IN_PROGRESS:
            telemetry.hp_at_each_room.append(session.player.hp)
            session = await attempt(manager.select_card(agent.choose_card(session)))
            if session.in_combat:
                telemetry.fights += 1
                session = await attempt(manager.resolve_combat())

            index = session.selected_index
            if index is not None and session.last_outcome is not None:
                card = session.room_cards[index]
                summary = summarize_room([card], {card.id: session.last_outcome})
                telemetry.traps_triggered += summary.traps_triggered
                telemetry.treasures_found += summary.treasures_found
                telemetry.encounter_kinds.append(session.last_outcome.kind)

        elif session.state is RunState.AWAITING_DECISION:
            if session.current_room < max_rooms and agent.choose_continue(session):
                session = await attempt(manager.continue_run())
            else:
                session = await attempt(manager.exit_run())
        else:
            raise RuntimeError(f"unexpected run state {session.state.value}")

    telemetry.final_result = session.state.value
    telemetry.rooms_reached = session.current_room
    telemetry.gems_collected = session.player.gems
    telemetry.monsters_defeated = session.monsters_defeated_total
    return telemetry


class BatchRunner:
    """Runs many seeded runs, optionally recording them on a shared ledger.

    Parameters
    ----------
    store:
        In-memory ledger the runs are recorded on.  ``None`` plays without
        a ledger.
    agent_class:
        Agent type; constructed with ``rng=`` when it accepts one.
    config:
        Game rules for every run.
    addresses:
        Wallet addresses assigned to runs round-robin.
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        agent_class: type[PlayAgent] = RandomAgent,
        config: GameConfig | None = None,
        addresses: list[str] | None = None,
    ) -> None:
        self.store = store
        self.agent_class = agent_class
        self.config = config or GameConfig()
        self.addresses = addresses or ["0xadventurer"]

    def run_batch(self, n_runs: int, base_seed: int = 42) -> list[RunTelemetry]:
        """Play *n_runs* runs with seeds ``base_seed .. base_seed + n_runs - 1``."""
        return asyncio.run(self.run_batch_async(n_runs, base_seed))

    async def run_batch_async(
        self, n_runs: int, base_seed: int = 42,
    ) -> list[RunTelemetry]:
        results: list[RunTelemetry] = []
        for i in range(n_runs):
            seed = base_seed + i
            address = self.addresses[i % len(self.addresses)]
            results.append(await self._run_one(seed, address))
        return results

    async def _run_one(self, seed: int, address: str) -> RunTelemetry:
        master_rng = GameRNG(seed)
        agent = self._make_agent(master_rng.fork("agent"))
        ledger = InMemoryLedger(self.store, address) if self.store is not None else None
        manager = RunManager(ledger, master_rng, self.config)
        telemetry = RunTelemetry(seed=seed, address=address)
        await play_run(manager, agent, telemetry)
        logger.debug(
            "Seed %d (%s): %s at room %d with %d gems",
            seed, address, telemetry.final_result,
            telemetry.rooms_reached, telemetry.gems_collected,
        )
        return telemetry

    def _make_agent(self, rng: GameRNG) -> PlayAgent:
        try:
            return self.agent_class(rng=rng)  # type: ignore[call-arg]
        except TypeError:
            return self.agent_class()
