import logging

import uvicorn
from fastapi import FastAPI

from app.config import get_settings
from app.api import transcript
from app.services.ytdlp_service import check_dependencies

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Fetch plain-text transcripts for YouTube videos",
    version="0.1.0",
)

transcript.register_exception_handlers(app)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.app_name,
        **check_dependencies(settings.ytdlp_binary),
    }


# Include routers
app.include_router(transcript.router)


def run():
    """
    Start the HTTP server.

    Usage:
        python -m app.main
    """
    logger.info(f"Transcript service on :{settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == '__main__':
    run()
