from fastapi import APIRouter, Depends, Request

from website_improver.features.analysis.schemas.analysis import AccessibilityCheckRequest
from website_improver.features.analysis.services.accessibility import check_url_accessibility
from website_improver.platform.response import api_response
from website_improver.platform.utils.rate_limit import client_ip, url_check_rate_limiter

router = APIRouter(prefix="/url", tags=["URL"])


async def enforce_url_check_rate_limit(request: Request) -> None:
    await url_check_rate_limiter.check(client_ip(request))


@router.post(
    "/check-accessibility",
    response_model=dict,
    summary="Check whether a URL is reachable",
    description="Unauthenticated HEAD check used before starting an analysis; limited per client IP",
    dependencies=[Depends(enforce_url_check_rate_limit)],
)
async def check_accessibility(request: AccessibilityCheckRequest):
    result = await check_url_accessibility(request.url, timeout_ms=request.timeout)
    return api_response(
        data=result.model_dump(mode="json", by_alias=True),
        message="URL is accessible" if result.accessible else "URL is not accessible",
    )
