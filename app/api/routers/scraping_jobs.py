"""
app/api/routers/scraping_jobs.py

Scraping job submission, status and management endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import get_current_actor, to_http_exception
from app.schemas.scraping_jobs import (
    JobManagementRequest,
    JobManagementResponse,
    MessageResponse,
    ScrapingJobAcceptedResponse,
    ScrapingJobCreateRequest,
    ScrapingJobListResponse,
    ScrapingJobResponse,
)
from app.scraping.errors import ScrapingError
from app.services.scraping_job_orchestrator import (
    ScrapingJobOrchestrator,
    get_scraping_job_orchestrator,
)

router = APIRouter(prefix="/scraper", tags=["scraper-jobs"])


@router.post(
    "/jobs",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ScrapingJobAcceptedResponse,
)
def create_scraping_job(
    payload: ScrapingJobCreateRequest,
    actor: str = Depends(get_current_actor),
    orchestrator: ScrapingJobOrchestrator = Depends(get_scraping_job_orchestrator),
) -> ScrapingJobAcceptedResponse:
    """
    Create a job and start processing its URLs in the background.
    """

    try:
        job = orchestrator.submit(
            payload.urls,
            platform=payload.platform,
            settings=payload.settings.model_dump() if payload.settings else None,
            created_by=actor,
        )
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc

    return ScrapingJobAcceptedResponse(
        job_id=job.id,
        status="processing",
        total_urls=job.total_urls,
        platform=job.platform,
        message=f"Scraping job started for {job.total_urls} URLs",
    )


@router.get("/jobs/status", response_model=ScrapingJobResponse)
def get_scraping_job_status(
    job_id: str = Query(..., description="Scraping job ID"),
    actor: str = Depends(get_current_actor),
    orchestrator: ScrapingJobOrchestrator = Depends(get_scraping_job_orchestrator),
) -> ScrapingJobResponse:
    try:
        job = orchestrator.get_status(job_id)
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc
    return ScrapingJobResponse.from_record(job)


@router.get("/jobs", response_model=ScrapingJobListResponse)
def list_scraping_jobs(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    platform: str | None = Query(default=None, description="Optional platform filter"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    actor: str = Depends(get_current_actor),
    orchestrator: ScrapingJobOrchestrator = Depends(get_scraping_job_orchestrator),
) -> ScrapingJobListResponse:
    try:
        jobs, total = orchestrator.list_jobs(
            limit=limit,
            offset=(page - 1) * limit,
            status=status_filter,
            platform=platform,
            created_by=actor,
        )
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc
    return ScrapingJobListResponse(
        jobs=[ScrapingJobResponse.from_record(job) for job in jobs],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/jobs/management", response_model=JobManagementResponse)
def manage_scraping_jobs(
    payload: JobManagementRequest,
    actor: str = Depends(get_current_actor),
    orchestrator: ScrapingJobOrchestrator = Depends(get_scraping_job_orchestrator),
) -> JobManagementResponse:
    try:
        outcome = orchestrator.run_management_action(payload.action, job_id=payload.job_id)
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc
    return JobManagementResponse(message=outcome.message, affected=outcome.affected)


@router.delete("/jobs", response_model=MessageResponse)
def delete_scraping_job(
    job_id: str = Query(..., description="Scraping job ID"),
    actor: str = Depends(get_current_actor),
    orchestrator: ScrapingJobOrchestrator = Depends(get_scraping_job_orchestrator),
) -> MessageResponse:
    try:
        orchestrator.delete_job(job_id)
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(message="Job deleted successfully")
