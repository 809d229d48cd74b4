"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.narrative_config import get_completion_provider
from src.api.observability import setup_observability
from src.api.routers.narrative import router as narrative_router
from src.api.routers.scenarios import router as scenarios_router


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    get_completion_provider()
    yield


app = FastAPI(
    title="Narrative Integrity API",
    version="0.1.0",
    description=(
        "Deterministic fingerprints for projection inputs, banned-phrase validation for "
        "AI-generated narratives, and confidence-scored what-if scenario parsing."
    ),
    openapi_tags=[
        {
            "name": "Narrative Integrity",
            "description": "Cache keys, narrative validation, and cached plan summaries.",
        },
        {
            "name": "Scenario Parsing",
            "description": "Free-text what-if queries mapped onto projection overrides.",
        },
    ],
    lifespan=_app_lifespan,
)

setup_observability(app)
logger = logging.getLogger(__name__)

app.include_router(narrative_router)
app.include_router(scenarios_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live", tags=["Health"])
def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready", tags=["Health"])
def health_ready() -> dict[str, str]:
    return {"status": "ready"}
