from fastapi import APIRouter

from website_improver.features.analysis.routes.analysis import router as analysis_router
from website_improver.features.analysis.routes.url import router as url_router
from website_improver.features.auth.routes.webhooks import router as webhooks_router
from website_improver.features.credits.routes.credits import router as credits_router
from website_improver.features.health.routes.health import router as health_router

api_router = APIRouter()

# Register all feature routes
api_router.include_router(analysis_router)
api_router.include_router(url_router)
api_router.include_router(credits_router)
api_router.include_router(webhooks_router)
api_router.include_router(health_router)
