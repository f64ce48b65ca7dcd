"""Application-level settings shared by the server, UI, and local stores."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

_PROJECT_ROOT = Path(__file__).parent.parent


class AppSettings(BaseModel):
    """Process settings read from the environment.

    Attributes:
        log_level: Root logging level name.
        host: Interface the server binds to.
        port: Port the server listens on.
        storage_secret: Secret NiceGUI uses to sign per-browser storage.
        data_dir: Directory for the session database and the file cache.
    """

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "8080")), ge=1, le=65535)
    storage_secret: str = Field(
        default_factory=lambda: os.getenv("NICEGUI_STORAGE_SECRET", "dataroom-assistant-secret")
    )
    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("DATAROOM_DATA_DIR", str(_PROJECT_ROOT / "data")))
    )

    @property
    def sessions_db(self) -> Path:
        return self.data_dir / "sessions.db"

    @property
    def file_cache_db(self) -> Path:
        return self.data_dir / "file_cache.db"


def get_settings() -> AppSettings:
    return AppSettings()
