"""
Metrics: Counters describing what a neurone has been doing.

Lightweight, always-on, and cheap enough to update on every tick.
Exposed through Axon.health_check() for logging and debugging.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class AxonMetrics:
    """
    Activity counters for a single axon.

    Queue:
        events_received: Deltas accepted onto the excitation queue
        events_dropped: Deltas dropped because the queue was full

    Loop:
        ticks: Transitions executed
        timeouts: Ticks where no delta arrived in time
        errors: Ticks that raised an unexpected exception
        phase_changes: Ticks that moved to a different phase

    Activity:
        fires: Times the neurone fired into its neighbours
        powerups: Times a large delta triggered the flash
        notifications_sent: Peer notifications delivered
        notifications_failed: Peer notifications that failed
    """

    name: str

    events_received: int = 0
    events_dropped: int = 0

    ticks: int = 0
    timeouts: int = 0
    errors: int = 0
    phase_changes: int = 0

    fires: int = 0
    powerups: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0

    def record_received(self) -> None:
        self.events_received += 1

    def record_dropped(self) -> None:
        self.events_dropped += 1

    def record_tick(self, timed_out: bool) -> None:
        self.ticks += 1
        if timed_out:
            self.timeouts += 1

    def record_error(self) -> None:
        self.errors += 1

    def record_phase_change(self) -> None:
        self.phase_changes += 1

    def record_fire(self) -> None:
        self.fires += 1

    def record_powerup(self) -> None:
        self.powerups += 1

    def record_notification(self, ok: bool) -> None:
        if ok:
            self.notifications_sent += 1
        else:
            self.notifications_failed += 1

    @property
    def drop_rate(self) -> float:
        """Proportion of offered deltas that were dropped."""
        offered = self.events_received + self.events_dropped
        if offered == 0:
            return 0.0
        return self.events_dropped / offered

    def to_dict(self) -> Dict[str, Any]:
        """Export metrics as a dictionary for serialization."""
        return {
            "name": self.name,
            "events_received": self.events_received,
            "events_dropped": self.events_dropped,
            "drop_rate": f"{self.drop_rate:.2%}",
            "ticks": self.ticks,
            "timeouts": self.timeouts,
            "errors": self.errors,
            "phase_changes": self.phase_changes,
            "fires": self.fires,
            "powerups": self.powerups,
            "notifications_sent": self.notifications_sent,
            "notifications_failed": self.notifications_failed,
        }
