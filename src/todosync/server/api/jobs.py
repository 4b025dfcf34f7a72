"""Complete-all job API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from todosync.server.api.deps import get_db, get_job_queue
from todosync.server.database import Database
from todosync.server.jobs import JobQueue, QueueFullError
from todosync.server.schemas import CompleteAllResponse, JobStatusResponse, job_to_response

router = APIRouter(prefix="/api/todolists", tags=["jobs"])


@router.post(
    "/{list_id}/complete-all",
    response_model=CompleteAllResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def complete_all(
    list_id: int,
    db: Database = Depends(get_db),
    job_queue: JobQueue = Depends(get_job_queue),
) -> CompleteAllResponse:
    """Queue a job completing every pending item of a list."""
    if db.get_list(list_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Todo list not found: {list_id}",
        )
    try:
        job = job_queue.enqueue(list_id)
    except QueueFullError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from None
    return CompleteAllResponse(job_id=job.job_id)


@router.get("/{list_id}/jobs/{job_id}/status", response_model=JobStatusResponse)
def get_job_status(
    list_id: int,
    job_id: str,
    job_queue: JobQueue = Depends(get_job_queue),
) -> JobStatusResponse:
    """Get the status of a complete-all job."""
    job_status = job_queue.get_status(job_id)
    if job_status is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job not found: {job_id}",
        )
    return job_to_response(job_status)
