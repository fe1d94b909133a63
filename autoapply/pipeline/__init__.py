"""
Job-matching and application pipeline.

- backoff: retry executor used by every external call
- cooldown: per-user minimum interval between runs
- orchestrator: the run state machine
- submitter: policy-checked application persistence
- status: polling projection of a run
"""

from autoapply.pipeline.backoff import BackoffExecutor, BackoffOptions
from autoapply.pipeline.cooldown import CooldownGuard
from autoapply.pipeline.orchestrator import RunOrchestrator
from autoapply.pipeline.status import get_status
from autoapply.pipeline.submitter import ApplicationSubmitter

__all__ = [
    "BackoffExecutor",
    "BackoffOptions",
    "CooldownGuard",
    "RunOrchestrator",
    "ApplicationSubmitter",
    "get_status",
]
