"""Backend connection settings for the data-room REST API."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB


class BackendConfig(BaseModel):
    """Configuration for the data-room backend client.

    Attributes:
        base_url: Root URL of the data-room API.
        timeout: Per-request timeout in seconds.
        stream_timeout: Read timeout for the live question stream.
        health_check_interval: Seconds a successful health check stays valid.
        max_upload_size: Largest file accepted for upload, in bytes.
    """

    base_url: str = Field(
        default_factory=lambda: os.getenv(
            "DATAROOM_API_BASE_URL", os.getenv("API_BASE_URL", "http://localhost:8000")
        ),
        description="Data-room API base URL",
    )
    timeout: float = Field(default=30.0, gt=0)
    stream_timeout: float = Field(default=300.0, gt=0)
    health_check_interval: float = Field(default=30.0, ge=0)
    max_upload_size: int = Field(default=MAX_UPLOAD_SIZE, ge=1)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the base URL so paths can be appended directly."""
        v = v.strip()
        if not v:
            raise ValueError("Backend URL required. Set DATAROOM_API_BASE_URL in .env")
        return v.rstrip("/")


def get_backend_config() -> BackendConfig:
    """Create backend configuration from environment."""
    return BackendConfig()
