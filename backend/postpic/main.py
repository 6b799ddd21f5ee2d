"""FastAPI application entry point."""

from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from postpic.core.config import settings
from postpic.core.logging import setup_logging
from postpic.core.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from postpic.modules.transcoding.router import router as videos_router

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## Postpic Media API

Upload a video once and get back an adaptive resolution ladder:
downscaled MP4 renditions, a poster per rendition, a default cover poster
and a placeholder caption track, all served under `/postpic`.
    """,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check endpoints",
        },
        {
            "name": "videos",
            "description": "Video upload and rendition ladder generation",
        },
    ],
)

setup_logging(
    level=settings.LOG_LEVEL if not settings.DEBUG else "DEBUG",
    json_format=settings.LOG_JSON,
    include_stack_trace=True,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        dict: Health status with "healthy" or "unhealthy" value.
    """
    return {"status": "healthy"}


app.include_router(videos_router, prefix=settings.API_V1_PREFIX)

Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount(
    settings.PUBLIC_URL_PREFIX,
    StaticFiles(directory=settings.MEDIA_ROOT),
    name="postpic",
)
