"""Main FastAPI application for the DreamPath backend."""
from fastapi import FastAPI, Request

from app.api.routes.dream_plans import router as dream_plans_router
from app.api.routes.dreams import router as dreams_router
from app.core.config import settings
from app.core.errors import DreamPathError, dreampath_exception_handler
from app.core.logging import configure_logging
from app.core.middleware import RequestIDMiddleware
from app.observability.client import init_opik
from app.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.add_exception_handler(DreamPathError, dreampath_exception_handler)
app.include_router(dreams_router)
app.include_router(dream_plans_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
