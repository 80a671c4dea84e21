"""
Protocols: Structural typing interfaces for the neurone's collaborators.

The state machine only ever talks to its surroundings through these
three shapes. Anything implementing the methods can be plugged in, which
is how the tests replace the serial port and the network with recorders.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LightingSink(Protocol):
    """
    Something that drives the local light animation.

    Implementations must never raise on transport failure; an absent
    device is a sink whose methods do nothing.
    """

    def update_energy(self, energy: float) -> None:
        """Display an energy level immediately."""
        ...

    def cooldown(self, energy: float) -> None:
        """Display one frame of the cooldown animation."""
        ...

    def powerup(self) -> None:
        """Start the powerup flash."""
        ...


@runtime_checkable
class PeerNotifier(Protocol):
    """
    Something that excites another neurone.

    notify() must return immediately: delivery is best-effort and the
    caller never learns whether it succeeded.
    """

    def notify(self, address: str, transfer: float) -> None:
        """Send ``transfer`` energy to the neurone at ``address``."""
        ...


@runtime_checkable
class ExcitationSource(Protocol):
    """
    Something that accepts excitation deltas for the axon.

    Both dendrites (camera and web) feed the axon through this.
    """

    async def enqueue(self, delta: float) -> bool:
        """Queue a delta. Returns False if it was dropped."""
        ...

    def enqueue_threadsafe(self, delta: float) -> None:
        """Queue a delta from a thread other than the event loop's."""
        ...
