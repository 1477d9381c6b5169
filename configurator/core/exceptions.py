"""Custom exceptions used throughout the configurator package."""

from typing import Any, Optional


class ConfiguratorError(Exception):
    """Base exception for all configurator errors.

    All configurator-specific exceptions should inherit from this class.
    This allows catching all compile errors with a single except clause.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """

        super().__init__(message)
        self.details = details or {}


class ConfigurationError(ConfiguratorError):
    """Raised when a selection or a family table is not usable.

    This includes:
    - A selected value that has no encoding for its setting
    - Missing or malformed family configuration
    - Static table validation failures (overlapping fields, drifted tables)
    """

    def __init__(
        self,
        config_key: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize configuration error.

        Args:
            config_key: The setting or configuration key that caused the error
            message: Description of what's wrong. If omitted, config_key is
                treated as the message and the key defaults to "configuration".
            details: Additional context
        """
        if message is None:
            message = config_key or "Invalid configuration"
            config_key = "configuration"
        if config_key is None:
            config_key = "configuration"

        full_message = f"Configuration error for '{config_key}': {message}"
        super().__init__(message=full_message, details=details)
        self.config_key = config_key


class RangeError(ConfiguratorError):
    """Raised when no divisor choice keeps a register value within its width.

    Examples:
    - Timer period too long for every allowed prescaler
    - Baud rate too slow for the 16-bit baud generator
    """

    def __init__(
        self,
        message: str,
        limit: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if limit is not None:
            details = details or {}
            details["limit"] = f"0x{limit:X}"

        super().__init__(message=message, details=details)
        self.limit = limit


class RoutingConflictError(ConfiguratorError):
    """Raised when several pins claim one single-consumer routing signal."""

    def __init__(
        self,
        signal: str,
        pins: list[str],
        details: Optional[dict[str, Any]] = None,
    ):
        message = (
            f"Routing conflict: input signal {signal} is claimed by pins "
            f"{', '.join(pins)}"
        )
        details = details or {}
        details["pins"] = list(pins)
        super().__init__(message=message, details=details)
        self.signal = signal
        self.pins = list(pins)


class ValidationError(ConfiguratorError):
    """Raised when a caller-supplied parameter is outside its legal domain.

    Examples:
    - Non-positive target baud, period or clock
    - Speed divisor other than 4 or 16
    - A pin configured twice with different settings
    """

    def __init__(
        self,
        parameter: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=f"Invalid {parameter}: {message}", details=details)
        self.parameter = parameter
