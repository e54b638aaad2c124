"""
Main FastAPI application entry point.
Configures the chunked upload receiver.
"""
import logging
from fastapi import FastAPI, Request
from src.core.config import settings
from src.core.exception_handler import register_exception_handlers
from src.core.logging_config import configure_logging
from src.api.routes import health_routes, upload_routes

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Receives chunked file uploads and places bytes at their offsets"
)

# Register exception handlers
register_exception_handlers(app)

# Register routes
app.include_router(health_routes.router)
app.include_router(upload_routes.router)


# Middleware logging each request with its outcome
@app.middleware("http")
async def log_request(request: Request, call_next):
    response = await call_next(request)
    logger.debug("%s %s -> %d (%s)", request.method, request.url.path,
                 response.status_code, request.headers.get("x-file-name", "-"))
    return response


# For local development
if __name__ == "__main__":
    import uvicorn
    configure_logging(settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8080)
