"""
Config: Node topology and state machine timings.

Two kinds of configuration live here:
    - NodeConfig: the per-node topology loaded once from a JSON/YAML file
      (master flag, neighbours, camera scaling, listen address)
    - AxonConfig: the timing and threshold constants of the energy state
      machine, identical on every node

Both are immutable after creation. parse_configuration() always hands
back a usable NodeConfig, even when it also reports an error.
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import logging

from gasworks.util.file_utils import from_json_or_yaml
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class BackpressureStrategy(Enum):
    """
    How to handle the excitation queue filling up faster than the axon drains it.

    DROP_OLDEST: Discard the oldest pending delta (keeps the animation current)
    DROP_NEWEST: Reject the incoming delta
    BLOCK: Wait until space is available
    """

    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"
    BLOCK = "block"


@dataclass(frozen=True)
class AdjacentNeurone:
    """
    One edge of the installation topology.

    Attributes:
        address: Base URL of the neighbour's web dendrite
        transfer: Energy delivered to the neighbour when notified
    """

    address: str
    transfer: float = 0.0


@dataclass(frozen=True)
class NodeConfig:
    """
    Static topology for a single neurone.

    Attributes:
        master_node: Whether this node synchronises the network startup
        movement_threshold: Optical flow below this is treated as stillness
        optical_flow_scale: Divisor turning optical flow into an energy delta
        listen_address: host:port the web dendrite binds to
        adjacent_nodes: Neighbours excited when this node fires
        all_nodes: Every node, used only by the master's startup broadcast
    """

    master_node: bool = False
    movement_threshold: float = 1.0
    optical_flow_scale: float = 1000.0
    listen_address: str = ":8080"
    adjacent_nodes: Tuple[AdjacentNeurone, ...] = ()
    all_nodes: Tuple[AdjacentNeurone, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: "NodeConfig" = None) -> "NodeConfig":
        """
        Build a NodeConfig from a parsed document.

        Keys are matched case-insensitively and the historical spellings
        (MasterNeurone, AdjacentNeurons, AllNeurones, ...) are accepted.
        Unknown keys are ignored and missing keys keep the values of
        ``base`` (the defaults when not given).

        Raises:
            ConfigurationError: If the document is not a mapping or a
                field cannot be converted
        """
        base = base or cls()
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Configuration document must be a mapping",
                context={"actual_type": type(data).__name__},
            )

        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _FIELD_ALIASES.get(str(key).replace("_", "").lower())
            if name is not None:
                values[name] = value

        try:
            overrides: Dict[str, Any] = {}
            if "master_node" in values:
                overrides["master_node"] = _to_bool(values["master_node"])
            for name in ("movement_threshold", "optical_flow_scale"):
                if name in values:
                    overrides[name] = float(values[name])
            if "listen_address" in values:
                overrides["listen_address"] = str(values["listen_address"])
            for name in ("adjacent_nodes", "all_nodes"):
                if name in values:
                    overrides[name] = _parse_neurones(values[name] or [])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid configuration value: {e}",
                original_error=e,
            ) from e

        return replace(base, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_FIELD_ALIASES = {
    "masternode": "master_node",
    "masterneurone": "master_node",
    "masterneuron": "master_node",
    "movementthreshold": "movement_threshold",
    "opticalflowscale": "optical_flow_scale",
    "listenaddress": "listen_address",
    "adjacentnodes": "adjacent_nodes",
    "adjacentneurones": "adjacent_nodes",
    "adjacentneurons": "adjacent_nodes",
    "allnodes": "all_nodes",
    "allneurones": "all_nodes",
    "allneurons": "all_nodes",
}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1", "on"):
            return True
        if lowered in ("false", "no", "0", "off", ""):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, (int, float)):
        return bool(value)
    raise TypeError(f"not a boolean: {value!r}")


def _parse_neurones(entries: Iterable[Any]) -> Tuple[AdjacentNeurone, ...]:
    if isinstance(entries, (str, bytes, Mapping)):
        raise TypeError("neurone list must be a sequence of mappings")

    neurones = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise TypeError(f"neurone entry must be a mapping, got {type(entry).__name__}")
        lowered = {str(k).replace("_", "").lower(): v for k, v in entry.items()}
        address = lowered.get("address")
        if not address:
            raise ValueError("neurone entry is missing an address")
        transfer = lowered.get("transfer", lowered.get("transferweight", 0.0))
        neurones.append(AdjacentNeurone(address=str(address), transfer=float(transfer)))
    return tuple(neurones)


def parse_configuration(config_file) -> Tuple[NodeConfig, Optional[ConfigurationError]]:
    """
    Load a node configuration from a JSON or YAML file.

    The defaulted configuration is always returned so callers can carry
    on without a file; the second element reports what went wrong.

    Example:
        >>> config, err = parse_configuration("missing.json")
        >>> err is not None and config == NodeConfig()
        True
    """
    config = NodeConfig()

    try:
        document = from_json_or_yaml(config_file)
    except (OSError, ValueError) as e:
        return config, ConfigurationError(
            f"Unable to load configuration: {e}",
            path=str(config_file),
            original_error=e,
        )

    try:
        config = NodeConfig.from_dict(document, base=config)
    except ConfigurationError as e:
        e.path = str(config_file)
        e.context["path"] = str(config_file)
        return config, e

    logger.debug(f"Loaded configuration from {config_file}: {config}")
    return config, None


@dataclass(frozen=True)
class AxonConfig:
    """
    Timings and thresholds of the energy state machine.

    Durations (seconds):
        wait_length: How long the master holds before broadcasting startup
        wait_timeout: How long a follower waits for the master's signal
        startup_length: Duration of the synchronised intro animation
        cooldown_length: Duration of the cooldown animation after firing
        powerup_length: Duration of the flash after a large excitation

    Energy levels:
        fire_threshold: Energy above which the neurone fires
        powerup_threshold: A single delta above this triggers the flash
        startup_signal_threshold: Deltas below this during wait mean
            "the master has started the network"
        idle_energy: Displayed while waiting, outside the operating range
        fire_reset_energy: Entry value of the cooldown/startup animation
        baseline_energy: Energy after an animation completes

    Receive timeouts (seconds):
        master_poll_timeout: How long the master waits per tick in wait
        tick_timeout: How long timed phases block before re-checking time

    Queue Management:
        queue_size: Maximum pending excitation deltas
        backpressure_strategy: How to handle queue overflow
    """

    wait_length: float = 30.0
    wait_timeout: float = 400.0
    startup_length: float = 20.0
    cooldown_length: float = 4.0
    powerup_length: float = 3.0

    fire_threshold: float = 1.0
    powerup_threshold: float = 0.45
    startup_signal_threshold: float = -0.5
    idle_energy: float = -2.0
    fire_reset_energy: float = -1.0
    baseline_energy: float = 0.0

    master_poll_timeout: float = 0.005
    tick_timeout: float = 0.25

    queue_size: int = 256
    backpressure_strategy: BackpressureStrategy = BackpressureStrategy.DROP_OLDEST

    def with_overrides(self, **kwargs) -> "AxonConfig":
        """
        Create a new config with some values overridden.

        Example:
            >>> fast = AxonConfig().with_overrides(cooldown_length=1.0)
        """
        return replace(self, **kwargs)
