"""Harness-specific exceptions."""

from __future__ import annotations


class ArchTestingError(Exception):
    """Base class for all harness errors."""


class LaunchError(ArchTestingError):
    """Raised when a service container fails to start.

    Parameters
    ----------
    service : str
        Service kind that failed to launch
    message : str
        Human-readable failure description
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"Failed to start {service} container: {message}")
        self.service = service


class ReadinessTimeoutError(ArchTestingError):
    """Raised when a service does not become ready within its startup budget.

    Parameters
    ----------
    service : str
        Service kind being probed
    budget_seconds : float
        Startup budget that elapsed
    attempts : int
        Number of probe attempts made
    last_error : BaseException | None
        Error raised by the final failing attempt, if any
    """

    def __init__(
        self,
        service: str,
        budget_seconds: float,
        attempts: int,
        last_error: BaseException | None = None,
    ) -> None:
        message = (
            f"{service} did not become ready within its startup budget "
            f"of {budget_seconds:.1f}s ({attempts} attempts)"
        )
        if last_error is not None:
            message += f": last error: {last_error}"
        super().__init__(message)
        self.service = service
        self.budget_seconds = budget_seconds
        self.attempts = attempts
        self.last_error = last_error


class FixtureError(ArchTestingError):
    """Raised when one-time post-start setup of a service fails."""

    def __init__(self, service: str, cause: BaseException) -> None:
        super().__init__(f"Fixture setup for {service} failed: {cause}")
        self.service = service
        self.cause = cause


class PhaseTimeoutError(ArchTestingError):
    """Raised when the setup or test phase exceeds its budget.

    Parameters
    ----------
    phase : str
        Phase name ("setup" or "test")
    budget_seconds : float
        Effective budget of the phase
    step : str | None
        Step in progress when the deadline passed
    """

    def __init__(self, phase: str, budget_seconds: float, step: str | None = None) -> None:
        message = f"{phase} phase exceeded its budget of {budget_seconds:.1f}s"
        if step:
            message += f" during '{step}'"
        super().__init__(message)
        self.phase = phase
        self.budget_seconds = budget_seconds
        self.step = step


class ShutdownError(ArchTestingError):
    """Raised when a service container fails to stop cleanly."""

    def __init__(self, service: str, container_name: str, cause: BaseException) -> None:
        super().__init__(f"Failed to stop {service} container {container_name}: {cause}")
        self.service = service
        self.container_name = container_name
        self.cause = cause


class RunFailedError(ArchTestingError, AssertionError):
    """Raised once per failed run, after teardown has completed.

    Subclasses ``AssertionError`` so test frameworks report it as a test
    failure rather than an error in the harness.

    Parameters
    ----------
    phase : str
        Phase that failed first ("setup", "test" or "teardown")
    step : str | None
        Step within the phase that failed
    cause : BaseException | None
        Original setup or test error (``None`` when only teardown failed)
    teardown_errors : list[str] | None
        Messages of teardown steps that failed
    """

    def __init__(
        self,
        phase: str,
        step: str | None,
        cause: BaseException | None,
        teardown_errors: list[str] | None = None,
    ) -> None:
        self.phase = phase
        self.step = step
        self.cause = cause
        self.teardown_errors = list(teardown_errors or [])
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        where = f"{self.phase} ({self.step})" if self.step else self.phase
        lines = [f"Test run failed during {where}"]
        if self.cause is not None:
            lines[0] += f": {self.cause}"
        if self.teardown_errors:
            header = "Teardown failed" if self.cause is None else "Teardown also failed"
            lines.append(f"{header}:")
            lines.extend(f"  - {error}" for error in self.teardown_errors)
        return "\n".join(lines)
