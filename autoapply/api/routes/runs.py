"""Processing run endpoints: start, cancel, poll."""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from sqlalchemy.orm import Session

from autoapply.api.deps import get_orchestrator
from autoapply.api.limiter import limiter
from autoapply.api.schemas import CurrentRunResponse, StartRunRequest, StartRunResponse
from autoapply.db import get_db
from autoapply.pipeline.models import RunStatus
from autoapply.pipeline.orchestrator import RunOrchestrator
from autoapply.pipeline.policy import load_run_config
from autoapply.pipeline.status import get_status

router = APIRouter()


@router.post("", status_code=202, response_model=StartRunResponse)
@limiter.limit("3/minute")
def start_run(
    request: Request,
    background_tasks: BackgroundTasks,
    data: StartRunRequest | None = None,
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
):
    """Start a processing run. Poll /runs/{run_id}/status for progress."""
    overrides = data.model_dump(exclude_none=True) if data else None
    config = load_run_config(db, x_user_id, overrides)

    run_id = orchestrator.start(x_user_id, config)

    # Run the pipeline in background
    background_tasks.add_task(orchestrator.execute, run_id, x_user_id, config)

    return StartRunResponse(run_id=run_id, status="processing", message="Processing started")


@router.get("/current", response_model=CurrentRunResponse)
def get_current_run(
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
):
    """Active run (if any) and when a new run may start."""
    active = orchestrator.active_run(db, x_user_id)
    return CurrentRunResponse(
        run_id=active.id if active else None,
        next_allowed_time=orchestrator.cooldown.next_allowed_time(db, x_user_id),
    )


@router.post("/{run_id}/cancel")
def cancel_run(
    run_id: str,
    x_user_id: str = Header(..., alias="X-User-ID"),
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
):
    """Cancel a processing run."""
    orchestrator.cancel(run_id, user_id=x_user_id)
    return {"run_id": run_id, "status": "cancelled", "message": "Job processing cancelled"}


@router.get("/{run_id}/status", response_model=RunStatus)
def get_run_status(
    run_id: str,
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """Current progress of a run. Safe to poll."""
    return get_status(db, run_id, user_id=x_user_id)
