"""
Transitions: The energy state machine as a table of plain functions.

Every phase is a function

    (state, event, now, ctx) -> (next_phase, next_state)

where ``event`` is the excitation delta pulled off the queue this tick
(``None`` when the receive timed out) and ``now`` is a monotonic
timestamp in seconds. The functions keep nothing between calls; all
they know is in the snapshot, and all they touch is reached through the
AxonContext. Given the same arguments and the same fakes, they always
make the same decision.

Energy conventions:
    - WAIT displays ``idle_energy`` (-2.0), outside the operating range.
    - Firing enters COOLDOWN at ``fire_reset_energy`` (-1.0) and the
      animation runs from there to ``baseline_energy`` (0.0).
    - STARTUP plays the same animation over ``startup_length``.
    - POWERUP carries the accumulated energy through the flash untouched.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
import logging

from .config import AxonConfig, NodeConfig
from .protocols import LightingSink, PeerNotifier
from .state import NeuroneState, Phase

logger = logging.getLogger(__name__)


@dataclass
class AxonContext:
    """
    Everything a transition needs besides the snapshot.

    Attributes:
        timings: State machine timings and thresholds
        sink: The local light animation
        notifier: Outbound excitation of other neurones
    """

    timings: AxonConfig
    sink: LightingSink
    notifier: PeerNotifier


Transition = Tuple[Phase, NeuroneState]
TransitionFn = Callable[[NeuroneState, Optional[float], float, AxonContext], Transition]


def initial_state(config: NodeConfig, now: float, timings: AxonConfig = None) -> Transition:
    """The boot phase: WAIT, displaying the idle energy."""
    timings = timings or AxonConfig()
    return Phase.WAIT, NeuroneState(
        energy=timings.idle_energy,
        phase_start=now,
        phase_duration=timings.wait_length,
        entry_energy=timings.idle_energy,
        config=config,
    )


def interpolate_cooldown(
    entry_energy: float,
    elapsed: float,
    duration: float,
    target: float = 0.0,
) -> float:
    """
    Linearly interpolate from ``entry_energy`` to ``target`` over ``duration``.

    Elapsed time outside [0, duration] is clamped to the ends.
    """
    if duration <= 0:
        return target
    fraction = min(max(elapsed / duration, 0.0), 1.0)
    return entry_energy + (target - entry_energy) * fraction


def _enter_startup(state: NeuroneState, now: float, timings: AxonConfig) -> Transition:
    return Phase.STARTUP, state.evolve(
        energy=timings.fire_reset_energy,
        phase_start=now,
        phase_duration=timings.startup_length,
        entry_energy=timings.fire_reset_energy,
    )


def _enter_accumulate(state: NeuroneState, energy: float, now: float) -> Transition:
    return Phase.ACCUMULATE, state.evolve(
        energy=energy,
        phase_start=now,
        phase_duration=0.0,
        entry_energy=energy,
    )


def _fan_out(notifier: PeerNotifier, neurones, tag: str) -> None:
    for neurone in neurones:
        notifier.notify(neurone.address, neurone.transfer)
        logger.info(f"{tag}[{neurone.address}] transfer={neurone.transfer:f}")


def wait(state: NeuroneState, event: Optional[float], now: float, ctx: AxonContext) -> Transition:
    """
    Hold until the whole installation has booted.

    The master discards whatever arrives, and once ``wait_length`` has
    passed tells every node to start. A follower starts as soon as the
    master's signal (a delta below ``startup_signal_threshold``) arrives,
    or gives up on the master after ``wait_timeout`` and goes straight to
    interactive mode.
    """
    timings = ctx.timings
    elapsed = state.elapsed(now)

    if state.config.master_node:
        if elapsed >= state.phase_duration:
            _fan_out(ctx.notifier, state.config.all_nodes, "startup")
            return _enter_startup(state, now, timings)
    else:
        if event is not None and event < timings.startup_signal_threshold:
            logger.info("Startup signal received from master")
            return _enter_startup(state, now, timings)
        if elapsed >= timings.wait_timeout:
            logger.warning(f"No startup signal after {elapsed:.1f}s, entering accumulate")
            return _enter_accumulate(state, timings.baseline_energy, now)

    return Phase.WAIT, state.evolve(energy=timings.idle_energy)


def _animate(phase: Phase, state: NeuroneState, now: float, ctx: AxonContext) -> Transition:
    elapsed = state.elapsed(now)

    if elapsed >= state.phase_duration:
        return _enter_accumulate(state, ctx.timings.baseline_energy, now)

    energy = interpolate_cooldown(
        state.entry_energy,
        elapsed,
        state.phase_duration,
        target=ctx.timings.baseline_energy,
    )
    ctx.sink.cooldown(energy)
    return phase, state.evolve(energy=energy)


def startup(state: NeuroneState, event: Optional[float], now: float, ctx: AxonContext) -> Transition:
    """The non-interactive intro: the cooldown animation over ``startup_length``."""
    return _animate(Phase.STARTUP, state, now, ctx)


def cooldown(state: NeuroneState, event: Optional[float], now: float, ctx: AxonContext) -> Transition:
    """Animate back to baseline after firing. Incoming deltas are discarded."""
    return _animate(Phase.COOLDOWN, state, now, ctx)


def accumulate(state: NeuroneState, event: Optional[float], now: float, ctx: AxonContext) -> Transition:
    """
    Integrate one excitation delta.

    Crossing ``fire_threshold`` fires into every adjacent neurone (each
    receives its own configured transfer, whatever this node's energy)
    and starts the cooldown. A single large delta that does not fire
    means a neighbour just fired into us: flash and hold the energy.
    Otherwise the new energy is displayed.
    """
    if event is None:
        return Phase.ACCUMULATE, state

    timings = ctx.timings
    new_energy = state.energy + event

    if new_energy > timings.fire_threshold:
        _fan_out(ctx.notifier, state.config.adjacent_nodes, "fire")
        logger.info(f"Fired at energy={new_energy:f}, cooling down")
        return Phase.COOLDOWN, state.evolve(
            energy=timings.fire_reset_energy,
            phase_start=now,
            phase_duration=timings.cooldown_length,
            entry_energy=timings.fire_reset_energy,
        )

    if event > timings.powerup_threshold:
        logger.info(f"Powerup! delta={event:f}")
        ctx.sink.powerup()
        return Phase.POWERUP, state.evolve(
            energy=new_energy,
            phase_start=now,
            phase_duration=timings.powerup_length,
            entry_energy=new_energy,
        )

    ctx.sink.update_energy(new_energy)
    return _enter_accumulate(state, new_energy, now)


def powerup(state: NeuroneState, event: Optional[float], now: float, ctx: AxonContext) -> Transition:
    """Pause accumulation while the flash plays, then resume with the held energy."""
    if state.elapsed(now) >= state.phase_duration:
        return _enter_accumulate(state, state.energy, now)
    return Phase.POWERUP, state


TRANSITIONS: Dict[Phase, TransitionFn] = {
    Phase.WAIT: wait,
    Phase.STARTUP: startup,
    Phase.ACCUMULATE: accumulate,
    Phase.COOLDOWN: cooldown,
    Phase.POWERUP: powerup,
}


def step(
    phase: Phase,
    state: NeuroneState,
    event: Optional[float],
    now: float,
    ctx: AxonContext,
) -> Transition:
    """Run the transition for ``phase``."""
    return TRANSITIONS[phase](state, event, now, ctx)


def receive_timeout(phase: Phase, state: NeuroneState, now: float, ctx: AxonContext) -> float:
    """
    How long the axon may block waiting for the next delta in ``phase``.

    A follower in WAIT blocks until its wait timeout runs out; every
    other phase polls so that timed transitions happen on schedule.
    """
    timings = ctx.timings
    if phase is Phase.WAIT:
        if state.config.master_node:
            return timings.master_poll_timeout
        return max(0.0, timings.wait_timeout - state.elapsed(now))
    return timings.tick_timeout
