"""Play agent implementations for headless run simulation.

Re-exports the base class and all concrete agent implementations so
consumers can do::

    from dungeon_gems.sim.play_agents import PlayAgent, RandomAgent
"""

from .base import PlayAgent
from .cautious_agent import CautiousAgent
from .random_agent import RandomAgent

__all__ = ["CautiousAgent", "PlayAgent", "RandomAgent"]
