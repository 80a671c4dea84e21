"""
Tests for the Axon loop.

Tests cover:
- Deltas are consumed in arrival order and drive the transitions
- Timed phases progress on receive timeouts
- Backpressure strategies
- Deltas from other threads
- run_forever survives failing ticks and stops cleanly
"""

import asyncio
import logging
import threading

import pytest

from gasworks.neurone.axon import Axon
from gasworks.neurone.config import AxonConfig, BackpressureStrategy
from gasworks.neurone.protocols import ExcitationSource
from gasworks.neurone.state import Phase


def make_axon(config, sink, notifier, clock, **overrides):
    timings = AxonConfig(tick_timeout=0.01, **overrides)
    return Axon(config, sink=sink, notifier=notifier, timings=timings, clock=clock)


@pytest.mark.asyncio
async def test_axon_starts_waiting_and_shows_idle(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.setup()

    assert axon.phase is Phase.WAIT
    assert sink.commands == [("e", -2.0)]


@pytest.mark.asyncio
async def test_axon_fires_from_queued_deltas(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.setup()

    await axon.enqueue(-1.0)
    assert await axon.run_once() is Phase.STARTUP

    clock.advance(axon.timings.startup_length)
    assert await axon.run_once() is Phase.ACCUMULATE

    for delta in (0.3, 0.3, 0.3, 0.2):
        await axon.enqueue(delta)
    phases = [await axon.run_once() for _ in range(4)]

    assert phases == [Phase.ACCUMULATE] * 3 + [Phase.COOLDOWN]
    assert notifier.sent == [("http://a:8080/", 0.8), ("http://b:8080/", 0.2)]
    assert axon.metrics.fires == 1
    assert axon.state.energy == -1.0


@pytest.mark.asyncio
async def test_axon_times_out_in_timed_phases(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.setup()
    await axon.enqueue(-1.0)
    await axon.run_once()

    clock.advance(5.0)
    assert await axon.run_once() is Phase.STARTUP

    assert axon.metrics.timeouts == 1
    assert sink.commands[-1] == ("c", pytest.approx(-0.75))


@pytest.mark.asyncio
async def test_follower_wait_timeout_without_master(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.setup()

    clock.advance(axon.timings.wait_timeout)
    assert await axon.run_once() is Phase.ACCUMULATE


@pytest.mark.asyncio
async def test_master_broadcasts_once(master_config, sink, notifier, clock):
    axon = make_axon(master_config, sink, notifier, clock)
    await axon.setup()

    assert await axon.run_once() is Phase.WAIT
    clock.advance(axon.timings.wait_length)
    assert await axon.run_once() is Phase.STARTUP
    assert await axon.run_once() is Phase.STARTUP

    assert len(notifier.sent) == 3


@pytest.mark.asyncio
async def test_drop_oldest_keeps_latest(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock, queue_size=2)

    for delta in (0.1, 0.2, 0.3):
        assert await axon.enqueue(delta)

    assert axon.metrics.events_dropped == 1
    assert await axon.receive(0) == 0.2
    assert await axon.receive(0) == 0.3
    assert await axon.receive(0) is None


@pytest.mark.asyncio
async def test_drop_newest_rejects(follower_config, sink, notifier, clock):
    axon = make_axon(
        follower_config, sink, notifier, clock,
        queue_size=1,
        backpressure_strategy=BackpressureStrategy.DROP_NEWEST,
    )

    assert await axon.enqueue(0.1)
    assert not await axon.enqueue(0.2)
    assert await axon.receive(0) == 0.1


@pytest.mark.asyncio
async def test_block_waits_for_space(follower_config, sink, notifier, clock):
    axon = make_axon(
        follower_config, sink, notifier, clock,
        queue_size=1,
        backpressure_strategy=BackpressureStrategy.BLOCK,
    )
    await axon.enqueue(0.1)

    pending = asyncio.create_task(axon.enqueue(0.2))
    await asyncio.sleep(0)
    assert not pending.done()

    assert await axon.receive(0) == 0.1
    assert await pending
    assert await axon.receive(0) == 0.2


@pytest.mark.asyncio
async def test_receive_times_out(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    assert await axon.receive(0.01) is None


@pytest.mark.asyncio
async def test_enqueue_threadsafe(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.setup()

    threads = [threading.Thread(target=axon.enqueue_threadsafe, args=(0.1,)) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    received = []
    for _ in range(5):
        received.append(await axon.receive(1.0))

    assert received == [0.1] * 5


def test_enqueue_threadsafe_before_setup_is_dropped(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    axon.enqueue_threadsafe(0.1)

    assert axon.metrics.events_dropped == 1
    assert axon.queue.empty()


@pytest.mark.asyncio
async def test_run_forever_survives_failing_sink(follower_config, notifier, clock):
    class ExplodingSink:
        def update_energy(self, energy):
            if energy >= 0:
                raise RuntimeError("boom")

        def cooldown(self, energy):
            pass

        def powerup(self):
            pass

    axon = make_axon(follower_config, ExplodingSink(), notifier, clock)
    clock.advance(axon.timings.wait_timeout)

    task = asyncio.create_task(axon.run_forever())
    await asyncio.sleep(0.05)
    await axon.enqueue(0.1)
    await asyncio.sleep(0.05)

    assert axon.running
    assert axon.metrics.errors == 1
    assert axon.phase is Phase.ACCUMULATE

    axon.stop()
    await asyncio.wait_for(task, timeout=1.0)
    assert not axon.running


@pytest.mark.asyncio
async def test_health_check(follower_config, sink, notifier, clock):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.enqueue(0.2)

    health = axon.health_check()

    assert health["phase"] == "wait"
    assert health["state"]["energy"] == -2.0
    assert health["state"]["entry_energy"] == axon.state.entry_energy
    assert health["queue_size"] == 1
    assert health["metrics"]["events_received"] == 1


def test_axon_is_an_excitation_source(follower_config):
    assert isinstance(Axon(follower_config), ExcitationSource)


@pytest.mark.asyncio
async def test_phase_change_logs_new_state(follower_config, sink, notifier, clock, caplog):
    axon = make_axon(follower_config, sink, notifier, clock)
    await axon.setup()
    await axon.enqueue(-1.0)

    with caplog.at_level(logging.INFO, logger="gasworks.neurone.axon"):
        await axon.run_once()

    message = next(r.getMessage() for r in caplog.records if r.getMessage().startswith("Phase change"))
    assert "phase=startup" in message
    assert "previous=wait" in message
    assert "entry_energy=-1.0" in message
