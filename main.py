"""
Main module for the FastAPI application.
"""
import logging
import os

from inoconnect.app import create_app
from inoconnect.core.config import settings

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = create_app()


if __name__ == "__main__":
    """
    Run the application directly.
    """
    import uvicorn

    port = int(os.getenv("PORT", settings.API_PORT))
    host = settings.API_HOST

    logger.info(f"Starting InnoConnect API on {host}:{port}")
    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
    )
