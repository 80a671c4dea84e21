"""
Axon: The loop that runs a neurone.

The axon is the single consumer of the excitation queue and the sole
owner of the neurone's phase and snapshot. Dendrites (camera, web, or
anything else implementing ExcitationSource) push deltas in; the axon
pulls one at a time, feeds it to the transition table, and keeps the
returned snapshot. No locks are needed because nothing else ever touches
the state.

    dendrites --enqueue--> queue --receive--> step() --> sink / notifier

Each receive is bounded by a per-phase timeout (see
transitions.receive_timeout) so timed phases progress on schedule even
when nothing is moving in front of the camera.

Example:
    >>> axon = Axon(config, sink=NullLightingSink(), notifier=notifier)
    >>> await axon.enqueue(0.3)
    >>> await axon.run_forever()
"""

from typing import Any, Callable, Dict, Optional
import asyncio
import logging
import time

from .config import AxonConfig, BackpressureStrategy, NodeConfig
from .lighting import NullLightingSink
from .notifier import NullPeerNotifier
from .metrics import AxonMetrics
from .protocols import LightingSink, PeerNotifier
from .state import Phase
from .transitions import AxonContext, initial_state, receive_timeout, step

logger = logging.getLogger(__name__)


class Axon:
    """
    A running neurone.

    Structure:
        ├── Queue: enqueue, enqueue_threadsafe, receive
        ├── Execution: setup, run_once, run_forever, stop
        └── Health: health_check

    Attributes:
        phase: Current phase of the state machine
        state: Current NeuroneState snapshot
        metrics: Activity counters
    """

    def __init__(
        self,
        config: NodeConfig = None,
        sink: LightingSink = None,
        notifier: PeerNotifier = None,
        timings: AxonConfig = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = None,
        metrics: AxonMetrics = None,
    ):
        """
        Initialize an axon in the WAIT phase.

        Args:
            config: Static node configuration
            sink: Lighting sink (a NullLightingSink if not given)
            notifier: Peer notifier used when firing and broadcasting startup
            timings: State machine timings and thresholds
            clock: Monotonic clock in seconds
            name: Identifier for logs (defaults to the listen address)
            metrics: Counters to record into, shareable with the notifier
        """
        self.config = config or NodeConfig()
        self.timings = timings or AxonConfig()
        self.clock = clock
        self.name = name or self.config.listen_address
        self.context = AxonContext(
            timings=self.timings,
            sink=sink or NullLightingSink(),
            notifier=notifier or NullPeerNotifier(),
        )
        self.metrics = metrics or AxonMetrics(self.name)

        self.queue: asyncio.Queue = asyncio.Queue(maxsize=self.timings.queue_size)
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.running = False

        self.phase, self.state = initial_state(self.config, self.clock(), self.timings)

    def _log(self, level: int, message: str, **extra) -> None:
        context = {"neurone": self.name, "phase": self.phase.value}
        context.update(extra)
        context_str = " ".join(f"{k}={v}" for k, v in context.items())
        logger.log(level, f"{message} | {context_str}")

    # ═══════════════════════════════════════════════════════════════════
    # QUEUE
    # ═══════════════════════════════════════════════════════════════════

    def _offer(self, delta: float) -> bool:
        if self.queue.full():
            if self.timings.backpressure_strategy == BackpressureStrategy.DROP_OLDEST:
                try:
                    self.queue.get_nowait()
                    self.metrics.record_dropped()
                except asyncio.QueueEmpty:
                    pass
            else:
                self.metrics.record_dropped()
                self._log(logging.DEBUG, "Dropped delta, queue full", delta=delta)
                return False

        try:
            self.queue.put_nowait(delta)
        except asyncio.QueueFull:
            self.metrics.record_dropped()
            return False
        self.metrics.record_received()
        return True

    async def enqueue(self, delta: float) -> bool:
        """
        Queue an excitation delta, applying the backpressure strategy.

        Returns:
            True if the delta was queued, False if dropped
        """
        delta = float(delta)
        if self.queue.full() and self.timings.backpressure_strategy == BackpressureStrategy.BLOCK:
            await self.queue.put(delta)
            self.metrics.record_received()
            return True
        return self._offer(delta)

    def enqueue_threadsafe(self, delta: float) -> None:
        """
        Queue a delta from another thread (the camera capture thread).

        Deltas offered before the axon has started are dropped.
        """
        if self.loop is None:
            self.metrics.record_dropped()
            return
        self.loop.call_soon_threadsafe(self._offer, float(delta))

    async def receive(self, timeout: float) -> Optional[float]:
        """
        Take the next delta off the queue.

        Returns:
            The delta, or None if nothing arrived within ``timeout``
        """
        try:
            return self.queue.get_nowait()
        except asyncio.QueueEmpty:
            pass

        if timeout <= 0:
            return None

        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    # ═══════════════════════════════════════════════════════════════════
    # EXECUTION
    # ═══════════════════════════════════════════════════════════════════

    async def setup(self) -> None:
        """Bind to the running loop and show the idle energy."""
        self.loop = asyncio.get_running_loop()
        self.context.sink.update_energy(self.state.energy)
        self._log(logging.INFO, "Axon ready", master=self.config.master_node)

    async def run_once(self) -> Phase:
        """
        Run one tick: receive (bounded), transition, keep the new snapshot.

        Returns:
            The phase after the tick
        """
        timeout = receive_timeout(self.phase, self.state, self.clock(), self.context)
        event = await self.receive(timeout)

        previous = self.phase
        self.phase, self.state = step(self.phase, self.state, event, self.clock(), self.context)

        self.metrics.record_tick(timed_out=event is None)
        if self.phase is not previous:
            self.metrics.record_phase_change()
            if self.phase is Phase.COOLDOWN and previous is Phase.ACCUMULATE:
                self.metrics.record_fire()
            elif self.phase is Phase.POWERUP:
                self.metrics.record_powerup()
            self._log(logging.INFO, "Phase change", previous=previous.value, **self.state.to_dict())

        self._log(logging.DEBUG, f"e[{self.state.energy:f}]")
        return self.phase

    async def run_forever(self) -> None:
        """
        Run the neurone until stop() is called or the task is cancelled.

        An unexpected error inside a tick is logged and the loop carries
        on with the snapshot it had; the animation must never stop.
        """
        await self.setup()
        self.running = True

        try:
            while self.running:
                try:
                    await self.run_once()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.metrics.record_error()
                    self._log(
                        logging.ERROR,
                        "Tick failed",
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
        except asyncio.CancelledError:
            pass
        finally:
            self.running = False
            self._log(logging.INFO, "Axon stopped")

    def stop(self) -> None:
        """Signal the axon to stop after the current tick."""
        self.running = False

    # ═══════════════════════════════════════════════════════════════════
    # HEALTH
    # ═══════════════════════════════════════════════════════════════════

    def health_check(self) -> Dict[str, Any]:
        """Return phase, energy, queue depth and metrics."""
        return {
            "name": self.name,
            "running": self.running,
            "master": self.config.master_node,
            "phase": self.phase.value,
            "state": self.state.to_dict(),
            "queue_size": self.queue.qsize(),
            "metrics": self.metrics.to_dict(),
        }

    def __repr__(self) -> str:
        return f"<Axon name={self.name} phase={self.phase.value} energy={self.state.energy:f}>"
