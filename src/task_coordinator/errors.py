"""Error taxonomy for the task coordinator.

Every error carries a machine-readable ``code`` and a human-readable
``detail``, mirroring the shape of the ``StepResult.error`` string that the
executor produces when it converts a failure into a result.
"""

from typing import Optional


class CoordinationError(Exception):
    """Base class for all coordinator errors."""

    code = "coordination.error"

    def __init__(self, detail: str, code: Optional[str] = None):
        self.detail = detail
        if code:
            self.code = code
        super().__init__(detail)


class InvalidRequestError(CoordinationError):
    """The request is empty or not text; rejected before any provider call."""

    code = "request.invalid"


class ProviderUnavailableError(CoordinationError):
    """A capability provider is unsupported or not currently usable.

    Never retried automatically. ``remediation`` tells the user what to do.
    """

    code = "provider.unavailable"

    def __init__(self, provider: str, detail: str, remediation: str = ""):
        self.provider = provider
        self.remediation = remediation
        message = f"{provider} not ready: {detail}"
        if remediation:
            message = f"{message}\n\n{remediation}"
        super().__init__(message)


class ProviderTimeoutError(CoordinationError):
    code = "provider.timeout"


class MalformedResponseError(CoordinationError):
    """Text-generation output was not JSON or did not match the schema."""

    code = "response.malformed"


class PlanValidationError(CoordinationError, ValueError):
    """An execution plan violates its topology invariants."""

    code = "plan.invalid"


class StepExecutionError(CoordinationError):
    """A single plan step could not produce a result."""

    code = "step.failed"
