from pathlib import Path

import pytest

from gasworks.neurone.config import AdjacentNeurone, AxonConfig, NodeConfig
from gasworks.neurone.transitions import AxonContext


TESTDATA = Path(__file__).parent / "testdata"


class FakeSink:
    """Records every command the state machine sends to the lights."""

    def __init__(self):
        self.commands = []

    def update_energy(self, energy):
        self.commands.append(("e", energy))

    def cooldown(self, energy):
        self.commands.append(("c", energy))

    def powerup(self):
        self.commands.append(("p", 0.0))

    def close(self):
        pass


class FakeNotifier:
    """Records notifications instead of sending them."""

    def __init__(self):
        self.sent = []

    def notify(self, address, transfer):
        self.sent.append((address, transfer))


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def testdata():
    return TESTDATA


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timings():
    return AxonConfig()


@pytest.fixture
def ctx(timings, sink, notifier):
    return AxonContext(timings=timings, sink=sink, notifier=notifier)


@pytest.fixture
def follower_config():
    return NodeConfig(
        adjacent_nodes=(
            AdjacentNeurone("http://a:8080/", 0.8),
            AdjacentNeurone("http://b:8080/", 0.2),
        ),
    )


@pytest.fixture
def master_config():
    return NodeConfig(
        master_node=True,
        all_nodes=(
            AdjacentNeurone("http://a:8080/", -1.0),
            AdjacentNeurone("http://b:8080/", -1.0),
            AdjacentNeurone("http://c:8080/", -1.0),
        ),
    )
