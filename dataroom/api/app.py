"""FastAPI application factory and configuration.

Hosts the NiceGUI pages and a small health endpoint. Manages the shared
data-room client's lifecycle.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dataroom import __version__
from dataroom.client import DataRoomClient, close_data_room_client, get_data_room_client

logger = logging.getLogger(__name__)

SERVICE_NAME = "dataroom-assistant"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info("Starting DataRoom Assistant...")
    yield
    # Shutdown
    await close_data_room_client()
    logger.info("Shutting down DataRoom Assistant...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="DataRoom Assistant",
        description=(
            "Web front end for a data-room document service: file management, "
            "categorised metadata, live document Q&A and a general LLM chat."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    @application.get("/health")
    async def health_check(
        client: Annotated[DataRoomClient, Depends(get_data_room_client)],
    ) -> dict[str, str]:
        """Report service health and data-room backend connectivity."""
        connected = await client.check_health()
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "backend": "connected" if connected else "unavailable",
        }

    return application


app = create_app()
