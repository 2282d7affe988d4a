"""Async HTTP client for the detection service."""
from __future__ import annotations

import logging
from typing import Iterable

import httpx
from pydantic import BaseModel, ValidationError

from api.exceptions import ApiResponseError, ApiTransportError
from common.settings import ClientConfig, client_config
from common.types import (
    DetectionRecord,
    DetectionsResponse,
    DetectRequest,
    DetectResponse,
    ImageFile,
    UploadResponse,
)

logger = logging.getLogger(__name__)


class DetectionApiClient:
    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config or client_config
        self._transport = transport

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.request_timeout_sec,
            transport=self._transport,
        )

    def _api_url(self, path: str) -> str:
        return f"{self._config.api_base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiTransportError(f"Detection service unavailable: {exc}") from exc

        if not response.is_success:
            raise ApiResponseError(
                f"{method} {url} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: type[BaseModel]):
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Unexpected payload from %s: %s", response.request.url, exc)
            raise ApiResponseError(
                f"Invalid response payload from {response.request.url}",
                status_code=response.status_code,
            ) from exc

    async def upload_image(self, image: ImageFile) -> str:
        """Upload image bytes and return the storage key assigned by the service."""
        response = await self._send(
            "POST",
            self._api_url("upload-image"),
            files={"file": (image.name, image.content, image.content_type)},
        )
        return self._parse(response, UploadResponse).image_key

    async def detect_image(self, image_key: str, classes: Iterable[str]) -> DetectResponse:
        payload = DetectRequest(image_key=image_key, classes=list(classes))
        response = await self._send(
            "POST",
            self._api_url("detect-image"),
            json=payload.model_dump(),
        )
        return self._parse(response, DetectResponse)

    async def fetch_detections(self, params: dict[str, str]) -> list[DetectionRecord]:
        response = await self._send("GET", self._api_url("detections"), params=params)
        return self._parse(response, DetectionsResponse).detections or []

    async def download(self, url: str) -> bytes:
        response = await self._send("GET", url)
        return response.content
