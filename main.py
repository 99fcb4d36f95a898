"""Main application entry point."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from shiftboard import __version__
from shiftboard.config import settings
from shiftboard.database import init_db
from shiftboard.exceptions import ValidationError, format_error_for_api
from shiftboard.scheduler import start_scheduler, stop_scheduler
from shiftboard.services.change_feed import ChangeFeed
from shiftboard.api.schedules import router as schedules_router
from shiftboard.api.pass_requests import router as pass_requests_router
from shiftboard.api.monthly_tasks import router as monthly_tasks_router


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Shiftboard",
    description="Weekly rosters, shift hand-over and swap requests, recurring task assignments",
    version=__version__,
    debug=settings.debug
)

# Listeners registered here see every committed roster and request change
app.state.change_feed = ChangeFeed()

app.include_router(schedules_router, prefix=settings.api_prefix)
app.include_router(pass_requests_router, prefix=settings.api_prefix)
app.include_router(monthly_tasks_router, prefix=settings.api_prefix)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Return domain errors as JSON with their HTTP status."""
    logger.warning(f"{request.method} {request.url.path} failed: {exc.error_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=format_error_for_api(exc))


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info("Application starting up...")
    init_db()

    if settings.rollover_enabled:
        start_scheduler()
    else:
        logger.info("Weekly rollover job disabled")

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Clean up on application shutdown."""
    stop_scheduler()


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
