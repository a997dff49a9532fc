"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import studio as studio_router
from app.api.v1.router import router as v1_router
from app.core.config import get_settings
from app.core.logging_config import init_logging
from app.core.middleware import TraceIdMiddleware

init_logging()
logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Vitrin Studio - e-commerce product preparation service.

    Upload product photos and catalog documents, then let Gemini produce
    marketing copy, studio images and short promotional videos, and export the
    result as a PDF report.

    ## Main API

    - `POST /ai/studio/sessions` - start a product session
    - `POST /ai/studio/sessions/{id}/uploads/{photo|catalog}` - upload files
    - `POST /ai/studio/sessions/{id}/analyze` - deep product analysis
    - `POST /ai/studio/sessions/{id}/images` - studio image generation
    - `POST /ai/studio/sessions/{id}/videos` - promotional video generation
    - `GET /ai/studio/sessions/{id}/report` - PDF report
    """,
    license_info={
        "name": "MIT",
    },
    tags_metadata=[
        {
            "name": "studio",
            "description": "Product sessions, analysis, image/video generation and reports",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-Id", "Content-Disposition"],
)
app.add_middleware(TraceIdMiddleware)

app.include_router(v1_router)
app.include_router(studio_router.router)


@app.get("/health")
async def health_check() -> dict[str, object]:
    """Health check; ``api_key_configured`` gates the studio in the front end."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "api_key_configured": bool(settings.gemini_api_key),
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
