"""
State: The phases of the energy state machine and the neurone snapshot.

A neurone is always in exactly one Phase and carries one NeuroneState.
NeuroneState is frozen: every transition builds a fresh snapshot, so a
snapshot handed to logging or a health check can never change under it.

Phase lifecycle:
    WAIT -> STARTUP -> ACCUMULATE <-> {COOLDOWN, POWERUP}

WAIT and STARTUP are only visited once, at boot. A follower that never
hears from the master skips STARTUP and goes straight to ACCUMULATE.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict

from .config import NodeConfig


class Phase(Enum):
    """The five phases of the neurone."""
    WAIT = "wait"
    STARTUP = "startup"
    ACCUMULATE = "accumulate"
    COOLDOWN = "cooldown"
    POWERUP = "powerup"


@dataclass(frozen=True)
class NeuroneState:
    """
    Immutable snapshot of a neurone.

    Attributes:
        energy: Current (displayed) energy level
        phase_start: Monotonic timestamp at which the current phase began
        phase_duration: How long the current phase lasts, in seconds
        entry_energy: Energy the current phase was entered with; the
            cooldown/startup animation interpolates away from it
        config: The node's static configuration
    """

    energy: float
    phase_start: float
    phase_duration: float
    entry_energy: float
    config: NodeConfig

    def elapsed(self, now: float) -> float:
        """Seconds since the current phase began."""
        return now - self.phase_start

    def evolve(self, **changes) -> "NeuroneState":
        """Return a new snapshot with some fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "energy": self.energy,
            "phase_start": self.phase_start,
            "phase_duration": self.phase_duration,
            "entry_energy": self.entry_energy,
        }
