"""Exception types for icmpcheck."""


class ConfigurationError(ValueError):
    """Raised when the configuration is malformed.

    Fatal at startup: the scheduler refuses to start with an invalid config.
    """


class ProbeError(Exception):
    """Base class for failures of a single probe session."""

    def __init__(self, target: str, message: str):
        super().__init__(f"{target}: {message}")
        self.target = target


class ResolutionError(ProbeError):
    """Target address could not be resolved to a network address."""


class ProbeExecutionError(ProbeError):
    """Probe session could not run (socket, permission or setup failure)."""
