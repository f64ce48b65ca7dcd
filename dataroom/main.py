"""Main application entry point.

Runs FastAPI with the NiceGUI pages mounted on the same server.
Environment variables are loaded from .env file.
"""

import logging
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

from dataroom.settings import get_settings  # noqa: E402

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run FastAPI with NiceGUI mounted on the same server."""
    import uvicorn
    from nicegui import ui

    from dataroom.api.app import create_app
    from dataroom.client import get_backend_config
    from dataroom.ui import (  # noqa: F401 - Registers the pages
        auth_pages,
        chat_page,
        data_room_page,
        document_chat_page,
    )

    app = create_app()

    # Mount NiceGUI onto FastAPI
    ui.run_with(
        app,
        title="DataRoom Assistant",
        favicon="🗂️",
        storage_secret=settings.storage_secret,
    )

    logger.info(f"Data-room backend: {get_backend_config().base_url}")
    logger.info(f"Starting server on http://localhost:{settings.port}")
    logger.info(f"API docs available at http://localhost:{settings.port}/docs")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
