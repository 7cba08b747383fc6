"""Exception hierarchy for deploy and rollback failures."""


class DeployError(Exception):
    """Base class for failures surfaced by deploy, rollback and lock handling."""


class LockError(DeployError):
    """shipit.lock is unreadable or malformed."""


class ContainerNotFoundError(DeployError):
    """The primary service has no running container to health-check."""


class HealthCheckError(DeployError):
    """A release did not become healthy.

    Raised for both the unhealthy and the timed-out outcome; `state` tells
    them apart.
    """

    def __init__(self, message, state=None, attempts=0):
        super().__init__(message)
        self.state = state
        self.attempts = attempts


class RollbackError(DeployError):
    """A rollback target could not be resolved."""


class StepError(DeployError):
    """A pipeline step failed on a host.

    Carries the host, the step and the underlying error so the operator can
    re-run the same pipeline.
    """

    def __init__(self, host, step, cause):
        self.host = host
        self.step = step
        self.cause = cause
        super().__init__(f"[{host}] step {step.number}/{step.total} ({step.label}) failed: {cause}")
