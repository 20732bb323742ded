from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from website_improver.api_routers.v1 import api_router
from website_improver.features.health.routes.health import router as health_router
from website_improver.platform.config import settings
from website_improver.platform.exceptions import add_exception_handlers

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="API for AI-assisted website analysis",
    version="1.0.0",
    debug=settings.DEBUG,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": f"{settings.APP_NAME} API",
        "description": "Scores a website for SEO, performance, accessibility and UX and suggests improvements.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
