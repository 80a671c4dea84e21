"""
Gasworks Neurone: the energy state machine of one node.

Each neurone integrates excitation from its dendrites into an energy
level, drives a light animation through a serial controller, and fires
into its neighbours when the energy crosses a threshold.

Quick Start:
    >>> from gasworks.neurone import Axon, parse_configuration
    >>>
    >>> config, err = parse_configuration("gasworks.json")
    >>> axon = Axon(config)
    >>> await axon.run_forever()

Module Structure:
    config.py      - NodeConfig topology, AxonConfig timings, file loading
    state.py       - Phase enum and the immutable NeuroneState snapshot
    transitions.py - The transition table (one plain function per phase)
    axon.py        - The single-consumer loop running the table
    lighting.py    - Serial light controller frames and discovery
    notifier.py    - Fire-and-forget HTTP notifications to neighbours
    metrics.py     - Activity counters
    protocols.py   - Structural interfaces for sinks, notifiers, sources
"""

from .config import (
    AdjacentNeurone,
    AxonConfig,
    BackpressureStrategy,
    NodeConfig,
    parse_configuration,
)
from .state import NeuroneState, Phase
from .transitions import AxonContext, TRANSITIONS, initial_state, interpolate_cooldown, step
from .axon import Axon
from .lighting import (
    LightingCommand,
    NullLightingSink,
    SerialLightingSink,
    encode_command,
    find_lighting_device,
    open_lighting_sink,
)
from .notifier import HttpPeerNotifier, NullPeerNotifier, build_notification_url
from .metrics import AxonMetrics
from .protocols import ExcitationSource, LightingSink, PeerNotifier
from .exceptions import (
    ConfigurationError,
    LightingCommandError,
    LightingSinkError,
    NeuroneError,
    PeerNotificationError,
)


__all__ = [
    # Core
    "Axon",
    "AxonContext",
    "Phase",
    "NeuroneState",
    "TRANSITIONS",
    "initial_state",
    "interpolate_cooldown",
    "step",

    # Config
    "AdjacentNeurone",
    "AxonConfig",
    "BackpressureStrategy",
    "NodeConfig",
    "parse_configuration",

    # Side effects
    "LightingCommand",
    "NullLightingSink",
    "SerialLightingSink",
    "encode_command",
    "find_lighting_device",
    "open_lighting_sink",
    "HttpPeerNotifier",
    "NullPeerNotifier",
    "build_notification_url",

    # Metrics
    "AxonMetrics",

    # Protocols
    "ExcitationSource",
    "LightingSink",
    "PeerNotifier",

    # Errors
    "ConfigurationError",
    "LightingCommandError",
    "LightingSinkError",
    "NeuroneError",
    "PeerNotificationError",
]
