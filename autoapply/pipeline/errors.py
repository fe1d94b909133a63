"""Pipeline error taxonomy."""

from datetime import timedelta

CANCELLED_MESSAGE = "Processing cancelled by user"


class PipelineError(Exception):
    """Base class for pipeline errors."""


class RateLimited(PipelineError):
    """A run was started inside the user's cooldown window."""

    def __init__(self, retry_after: timedelta):
        self.retry_after = retry_after
        seconds = max(0, int(retry_after.total_seconds()))
        super().__init__(f"Please wait {seconds} seconds before starting another process")


class AlreadyProcessing(PipelineError):
    """The user already has an active run."""

    def __init__(self, user_id: str, run_id: str | None = None):
        self.user_id = user_id
        self.run_id = run_id
        super().__init__("Job processing already in progress")


class PreconditionFailed(PipelineError):
    """Resume, preferences or quota do not allow a run."""

    def __init__(self, reason: str, run_id: str | None = None):
        self.reason = reason
        self.run_id = run_id
        super().__init__(reason)


class NotProcessing(PipelineError):
    """Cancel was requested for a run that is already terminal."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} is not processing")


class RunNotFound(PipelineError):
    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} not found")


class DiscoveryFailed(PipelineError):
    """The discovery service errored. Retried by the backoff executor."""


class NoResults(PipelineError):
    """Discovery succeeded but returned no candidates. Not retried."""

    def __init__(self, message: str = "No jobs found matching your preferences"):
        super().__init__(message)


class ScoringFailed(PipelineError):
    """The match scorer could not produce a score for a job."""


class InvalidScoringInput(ScoringFailed):
    """The inputs can never be scored (no resume skills, empty description). Not retried."""


class SubmissionPartialFailure(PipelineError):
    """A single job could not be submitted; the run continues."""

    def __init__(self, job_ref: str, cause: Exception):
        self.job_ref = job_ref
        self.cause = cause
        super().__init__(f"Failed to submit application for {job_ref}: {cause}")


class Cancelled(PipelineError):
    """The run was cancelled by the user between stages."""

    def __init__(self):
        super().__init__(CANCELLED_MESSAGE)
