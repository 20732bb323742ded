import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from website_improver.features.analysis.schemas.analysis import AnalysisRequest
from website_improver.features.analysis.services import job_store
from website_improver.features.analysis.services.orchestrator import create_analysis_job
from website_improver.features.analysis.services.queue import AnalysisQueue, get_analysis_queue
from website_improver.features.auth.dependencies import get_current_user_id
from website_improver.platform.db.session import get_db
from website_improver.platform.exceptions import ConflictError, InputValidationError, NotFoundError
from website_improver.platform.response import api_response
from website_improver.platform.utils.rate_limit import analysis_rate_limiter

router = APIRouter(prefix="/analyze", tags=["Analysis"])


async def enforce_analysis_rate_limit(user_id: str = Depends(get_current_user_id)) -> str:
    await analysis_rate_limiter.check(user_id)
    return user_id


def _require_job_id(job_id: str) -> str:
    try:
        uuid.UUID(job_id)
    except ValueError:
        raise InputValidationError("Invalid job ID format", code="INVALID_JOB_ID")
    return job_id


@router.post(
    "",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Start a website analysis",
    description="Reserve one credit and queue an analysis of the given URL",
)
async def start_analysis(
    request: AnalysisRequest,
    user_id: str = Depends(enforce_analysis_rate_limit),
    db: AsyncSession = Depends(get_db),
    queue: AnalysisQueue = Depends(get_analysis_queue),
):
    summary = await create_analysis_job(
        db,
        queue,
        user_id=user_id,
        url=request.url,
        options=request.options,
    )
    return api_response(
        data=summary.model_dump(mode="json", by_alias=True),
        message="Analysis job created successfully",
    )


@router.get(
    "",
    response_model=dict,
    summary="List recent analyses",
    description="Most recent analysis jobs of the current user, newest first",
)
async def list_analyses(
    limit: int = Query(10, ge=1, le=50),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    jobs = await job_store.list_user_jobs(db, user_id, limit=limit)
    return api_response(
        data=[job_store.to_status_response(job).model_dump(mode="json", by_alias=True) for job in jobs],
        message="Analysis jobs retrieved successfully",
    )


@router.get(
    "/{job_id}",
    response_model=dict,
    summary="Get analysis status",
)
async def get_analysis_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    job_status = await job_store.get_status(db, _require_job_id(job_id), user_id)
    if job_status is None:
        raise NotFoundError("Analysis job not found", code="JOB_NOT_FOUND")

    return api_response(
        data=job_status.model_dump(mode="json", by_alias=True),
        message="Analysis status retrieved successfully",
    )


@router.get(
    "/{job_id}/results",
    response_model=dict,
    summary="Get analysis results",
    description="Scores, improvements and metadata of a completed analysis",
)
async def get_analysis_results(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    results = await job_store.get_results(db, _require_job_id(job_id), user_id)
    if results is None:
        raise NotFoundError("Analysis results not found", code="RESULTS_NOT_FOUND")
    if results.status != "completed":
        raise ConflictError(f"Analysis is {results.status}; results are not yet available")

    return api_response(
        data=results.model_dump(mode="json", by_alias=True),
        message="Analysis results retrieved successfully",
    )
