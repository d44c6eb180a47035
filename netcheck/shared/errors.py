"""Error types shared by the prober and the observer."""


class NetcheckError(Exception):
    """Base class for all netcheck errors."""


class ValidationError(NetcheckError, ValueError):
    """Malformed or missing required input. Raised before any state changes."""


class NotFoundError(NetcheckError, KeyError):
    """Registry lookup miss, including entries whose TTL has elapsed."""

    def __str__(self):
        return str(self.args[0]) if self.args else "not found"


class TransientIOError(NetcheckError, OSError):
    """A remote call failed after all retry attempts."""
