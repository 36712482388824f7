"""
Error classes for the runner lifecycle.

Create and Wait raise these to the caller; Delete logs them instead.

- ValidationError: bad input, raised before any remote call
- DiscoveryError: the RGD for a scale set could not be resolved
- ResourceError / WatchError: a Kubernetes API call failed
- RunnerFailedError: the job itself failed (an expected outcome)
- CancelledError / DeadlineExceededError: the run context ended
"""


class RunnerError(Exception):
    """Base exception for kro_runner."""
    pass


class ValidationError(RunnerError, ValueError):
    """Invalid caller input."""
    pass


class EmptyRunnerNameError(ValidationError):
    def __init__(self, message="empty runner name"):
        super().__init__(message)


class EmptyJitConfigError(ValidationError):
    def __init__(self, message="empty JIT config"):
        super().__init__(message)


class DiscoveryError(RunnerError):
    """The ResourceGraphDefinition for a scale set could not be resolved."""
    pass


class TemplateNotFoundError(DiscoveryError):
    """No RGD carries the scale-set label."""
    pass


class AmbiguousTemplateError(DiscoveryError):
    """More than one RGD carries the scale-set label."""
    pass


class MalformedTemplateError(DiscoveryError):
    """
    The RGD was found but cannot be used.

    Raised when spec.schema.kind is missing or empty, or when the kind's
    resource name collides with another kind.
    """
    pass


class ResourceError(RunnerError):
    """A create/get/delete call against the API server failed."""
    pass


class CreateOutcomeUnknownError(ResourceError):
    """The create request was sent but no response came back; the instance may exist."""
    pass


class WatchError(RunnerError):
    """The instance watch could not be opened or delivered an error event."""
    pass


class RunnerFailedError(RunnerError):
    """The runner workload finished unsuccessfully."""

    def __init__(self, message="runner execution failed"):
        super().__init__(message)


class IndeterminateOutcomeError(RunnerError):
    """Resources are ready but the runner pod phase could not be read."""
    pass


class MissingSessionError(RunnerError):
    """Wait or Delete was called without a session from Create."""
    pass


class CancelledError(RunnerError):
    """The run context was cancelled."""

    def __init__(self, message="context canceled"):
        super().__init__(message)


class DeadlineExceededError(CancelledError):
    """The run context deadline passed."""

    def __init__(self, message="context deadline exceeded"):
        super().__init__(message)
