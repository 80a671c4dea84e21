"""
Neurone Exception Hierarchy.

Only configuration failures are surfaced to callers (and even then as a
returned value, see config.parse_configuration). Hardware and network
failures are contained where the side effect happens and logged.

Exception Hierarchy:
    NeuroneError (base)
    ├── ConfigurationError
    ├── LightingSinkError
    │   └── LightingCommandError
    └── PeerNotificationError
"""

from typing import Any, Dict, Optional


class NeuroneError(Exception):
    """Base exception for all neurone-related errors.

    Attributes:
        node: Listen address (or other identifier) of the node, if known
        context: Additional context dictionary
    """

    def __init__(
        self,
        message: str,
        node: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.node = node
        self.context = context or {}

        parts = [message]
        if node:
            parts.append(f"node={node}")

        super().__init__(" | ".join(parts))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": str(self.args[0]) if self.args else "",
            "node": self.node,
            **self.context,
        }


class ConfigurationError(NeuroneError):
    """Configuration file could not be read or parsed.

    Raised (and returned) when:
    - The file does not exist or cannot be opened
    - The document is not valid JSON/YAML
    - The document is not a mapping, or a field has the wrong type
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs,
    ):
        self.path = path
        self.original_error = original_error

        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        if original_error:
            context["original_error_type"] = type(original_error).__name__
            context["original_error_message"] = str(original_error)

        super().__init__(message, context=context, **kwargs)


class LightingSinkError(NeuroneError):
    """Base class for lighting hardware errors."""
    pass


class LightingCommandError(LightingSinkError):
    """A command byte that the lighting firmware does not understand."""

    def __init__(self, message: str, command: Optional[bytes] = None, **kwargs):
        self.command = command

        context = kwargs.pop("context", {})
        if command is not None:
            context["command"] = repr(command)

        super().__init__(message, context=context, **kwargs)


class PeerNotificationError(NeuroneError):
    """A notification to a neighbouring neurone could not be delivered.

    Never raised out of the notifier; built so the failure can be logged
    with its context.
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs,
    ):
        self.address = address
        self.original_error = original_error

        context = kwargs.pop("context", {})
        if address:
            context["address"] = address
        if original_error:
            context["original_error_type"] = type(original_error).__name__

        super().__init__(message, context=context, **kwargs)
