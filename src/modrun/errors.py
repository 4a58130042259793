"""Error taxonomy shared by every modrun component."""

from __future__ import annotations


class ModrunError(RuntimeError):
    """Base class for errors raised by the loading pipeline."""


class ResolutionError(ModrunError):
    """Raised when no registered package matches an identifier, or it leaves its package."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Could not resolve module {identifier!r}")
        self.identifier = identifier


class LoadError(ModrunError):
    """Raised when source or artifact bytes cannot be retrieved."""

    def __init__(self, identifier: str, location: str, cause: BaseException) -> None:
        super().__init__(f"Could not load {identifier!r} from {location}: {cause}")
        self.identifier = identifier
        self.location = location
        self.cause = cause


class CapabilityAbsentError(ModrunError):
    """Raised when a native loading capability is not available on this host."""

    def __init__(self, capability: str) -> None:
        super().__init__(f"Loading capability '{capability}' is not available")
        self.capability = capability


class ConfigurationError(ModrunError):
    """Raised when a required collaborator was not supplied."""


class InvocationError(ModrunError):
    """Raised when a module body cannot be compiled."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class UnknownStrategyError(ModrunError):
    """Raised when the dispatcher finds itself in an unexpected strategy state."""

    def __init__(self, strategy: object) -> None:
        super().__init__(f"Unknown module load strategy: {strategy!r}")
        self.strategy = strategy


__all__ = [
    "CapabilityAbsentError",
    "ConfigurationError",
    "InvocationError",
    "LoadError",
    "ModrunError",
    "ResolutionError",
    "UnknownStrategyError",
]
