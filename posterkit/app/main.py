"""FastAPI backend application."""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from posterkit.app.config import Settings
from posterkit.app.errors import PipelineError
from posterkit.app.models import (
    BackgroundImageRequest,
    BackgroundImageResponse,
    GenerateTemplatesRequest,
    GenerateTemplatesResponse,
    ParseEventRequest,
    ParsedEventData,
)
from posterkit.app.service import PosterService
from posterkit.app.logger import active_log_file, logger

app = FastAPI(
    title="Posterkit API",
    description="API for extracting event visual identity and generating poster templates",
    version="0.1.0"
)

# CORS for browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global service (initialized on startup)
poster_service = None


@app.on_event("startup")
async def startup_event():
    """Initialize the service on startup."""
    global poster_service
    poster_service = PosterService.from_settings(Settings.from_env())


@app.on_event("shutdown")
async def shutdown_event():
    """Release the shared browser."""
    if poster_service is not None:
        await poster_service.teardown()


def _service() -> PosterService:
    if poster_service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return poster_service


def _http_error(error: PipelineError) -> HTTPException:
    logger.error(f"{error.kind.value}: {error.detail}")
    return HTTPException(status_code=error.kind.http_status, detail=error.to_response())


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Posterkit API",
        "version": "0.1.0",
        "endpoints": ["/events/parse", "/templates", "/background"]
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    service = poster_service
    return {"status": "healthy", "ai_enabled": bool(service and service.ai_enabled)}


@app.post("/events/parse", response_model=ParsedEventData, response_model_by_alias=True, response_model_exclude_none=True)
async def parse_event(request: ParseEventRequest):
    """Extract structured event details from an event page URL."""
    service = _service()
    try:
        logger.info(f"Parsing event from URL: {request.url}")
        return await service.parse_event_from_url(request.url)
    except PipelineError as e:
        raise _http_error(e)


@app.post("/templates", response_model=GenerateTemplatesResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def generate_templates(request: GenerateTemplatesRequest):
    """Generate poster templates for a parsed event."""
    service = _service()
    try:
        templates = await service.generate_templates(request.event_data, request.count)
        logger.info(f"Generated {len(templates)} templates")
        return GenerateTemplatesResponse(templates=templates)
    except PipelineError as e:
        raise _http_error(e)


@app.post("/background", response_model=BackgroundImageResponse, response_model_by_alias=True)
async def generate_background(request: BackgroundImageRequest):
    """Generate (or fall back to a placeholder for) a poster background image."""
    service = _service()
    image_url = await service.generate_background_image(request.event_data, request.style)
    logger.info("Background image request completed")
    return BackgroundImageResponse(image_url=image_url)


def main():
    """Main entry point for running the backend server."""
    logger.info("Starting Posterkit API server...")
    log_file = active_log_file(logger)
    if log_file is not None:
        logger.info(f"Log file: {log_file.absolute()}")
    uvicorn.run(
        "posterkit.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="warning"
    )


if __name__ == "__main__":
    main()
