"""
Client configuration resolved from the environment.
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=BASE_DIR / ".env")

DEFAULT_PROFILE_PATH = Path.home() / ".vessel-detection" / "profile.json"


class ClientConfig(BaseModel):
    api_base_url: str = Field(
        default_factory=lambda: os.getenv("DETECTION_API_BASE_URL", "http://localhost:8000").strip()
    )
    storage_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "DETECTION_STORAGE_BASE_URL", "http://localhost:9000/detections"
        ).strip()
    )
    request_timeout_sec: float = Field(
        default_factory=lambda: float(os.getenv("DETECTION_REQUEST_TIMEOUT_SEC", "30"))
    )
    page_size: int = Field(
        default_factory=lambda: int(os.getenv("DETECTION_PAGE_SIZE", "10")),
        gt=0,
    )
    profile_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("DETECTION_PROFILE_PATH", str(DEFAULT_PROFILE_PATH))
        ).expanduser()
    )


client_config = ClientConfig()
