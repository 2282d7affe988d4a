"""
Display URLs for stored detection images, and saving them to disk.
"""
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from api.exceptions import ApiError
from common.settings import ClientConfig, client_config

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_NAME = "download.png"


class ImageExportError(Exception):
    """Raised when an image cannot be downloaded or written to disk."""


def _normalize_key(raw_key: str) -> str:
    key = raw_key.strip().lstrip("/")
    if not key:
        raise ValueError("Image key is required")
    if ".." in PurePosixPath(key).parts:
        raise ValueError("Image key must not contain '..'")
    return key


def image_url(raw_key: str, config: ClientConfig | None = None) -> str:
    config = config or client_config
    base = config.storage_base_url.rstrip("/")
    return f"{base}/{_normalize_key(raw_key)}"


def filename_from_url(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or DEFAULT_DOWNLOAD_NAME


async def save_image(client, url: str, destination: str | Path) -> Path:
    """
    Download the image at url and write it to destination.
    A directory destination gets the file name from the URL.
    """
    destination = Path(destination)
    if destination.is_dir():
        destination = destination / filename_from_url(url)

    try:
        content = await client.download(url)
    except ApiError as exc:
        logger.exception("Failed to download image %s", url)
        raise ImageExportError(f"Could not download image: {exc}") from exc

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(content)
    except OSError as exc:
        logger.exception("Failed to write image to %s", destination)
        raise ImageExportError(f"Could not save image to {destination}: {exc}") from exc

    logger.info("Saved image %s to %s", url, destination)
    return destination
