"""Upload-then-detect pipeline for a single image."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from api.exceptions import ApiError
from common.classes import ClassLabel, ordered
from common.settings import ClientConfig, client_config
from common.types import DetectionResult, DetectResponse, ImageFile
from detection.exceptions import (
    InvalidTransitionError,
    NoFileSelectedError,
    SessionBusyError,
)
from detection.types import IN_FLIGHT, SessionStatus, can_transition
from storage.images import image_url, save_image

logger = logging.getLogger(__name__)


class DetectionSession:
    """
    Drives one image through upload and detection.

    Every reset or file selection starts a new attempt. A pipeline still
    awaiting the service when its attempt is superseded drops whatever the
    service returns instead of applying it.
    """

    def __init__(self, client, config: ClientConfig | None = None):
        self._client = client
        self._config = config or client_config
        self._attempt = 0
        self.status = SessionStatus.IDLE
        self.file: ImageFile | None = None
        self.uploaded_key: str | None = None
        self.result: DetectionResult | None = None
        self.error: str | None = None

    @property
    def busy(self) -> bool:
        return self.status in IN_FLIGHT

    def _transition(self, target: SessionStatus):
        if not can_transition(self.status, target):
            raise InvalidTransitionError(
                f"Cannot move detection session from '{self.status.value}' to '{target.value}'"
            )
        logger.debug("Session %s -> %s", self.status.value, target.value)
        self.status = target

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    def select_file(self, file: ImageFile):
        self._transition(SessionStatus.FILE_SELECTED)
        self._attempt += 1
        self.file = file
        self.uploaded_key = None
        self.result = None
        self.error = None

    def reset(self):
        self._attempt += 1
        self.status = SessionStatus.IDLE
        self.file = None
        self.uploaded_key = None
        self.result = None
        self.error = None

    async def run(self, classes: Iterable[ClassLabel]) -> SessionStatus:
        """
        Upload the selected file, then request detection of the given classes.

        Service errors leave the session FAILED with the file still selected,
        so run() can be retried directly. Returns the resulting status.
        """
        if self.file is None:
            raise NoFileSelectedError("Select an image before running detection")
        if self.busy:
            raise SessionBusyError("Detection is already running for this session")

        self._transition(SessionStatus.UPLOADING)
        attempt = self._attempt
        file = self.file
        # The full set is sent explicitly; the service has no "all classes" shorthand.
        class_names = [label.value for label in ordered(classes)]
        self.uploaded_key = None
        self.error = None

        try:
            image_key = await self._client.upload_image(file)
        except ApiError as exc:
            return self._fail(attempt, "Upload", exc)
        if not self._is_current(attempt):
            logger.info("Discarding upload of '%s' for a superseded attempt", file.name)
            return self.status

        logger.info("Uploaded '%s' as %s", file.name, image_key)
        self.uploaded_key = image_key
        self._transition(SessionStatus.DETECTING)

        try:
            response = await self._client.detect_image(image_key, class_names)
        except ApiError as exc:
            return self._fail(attempt, "Detection", exc)
        if not self._is_current(attempt):
            logger.info("Discarding detection for '%s' from a superseded attempt", image_key)
            return self.status

        try:
            result = self._compose_result(image_key, response)
        except ValueError as exc:
            return self._fail(attempt, "Detection", exc)
        self.result = result
        self._transition(SessionStatus.READY)
        logger.info(
            "Detection %s ready: %d object(s)",
            self.result.detection_id,
            self.result.object_count,
        )
        return self.status

    def _fail(self, attempt: int, stage: str, exc: Exception) -> SessionStatus:
        if not self._is_current(attempt):
            logger.info("Ignoring %s failure from a superseded attempt: %s", stage.lower(), exc)
            return self.status
        logger.exception("%s failed for '%s'", stage, self.file.name if self.file else "?")
        self.error = f"{stage} failed: {exc}"
        self._transition(SessionStatus.FAILED)
        return self.status

    def _compose_result(self, image_key: str, response: DetectResponse) -> DetectionResult:
        return DetectionResult(
            detection_id=response.detection_id,
            object_count=response.object_count,
            object_classes=response.object_classes,
            image_key=image_key,
            processed_image_key=response.processed_image_key,
            original_image_url=image_url(image_key, self._config),
            processed_image_url=image_url(response.processed_image_key, self._config),
        )

    def class_counts(self) -> dict[str, int]:
        return self.result.class_counts() if self.result else {}

    def detected_classes(self) -> list[str]:
        return self.result.detected_classes() if self.result else []

    async def export_result(self, directory: str | Path) -> Path:
        """Save the processed image as detection_<id>.png inside directory."""
        if self.status is not SessionStatus.READY or self.result is None:
            raise InvalidTransitionError("No detection result to export")
        target = Path(directory) / f"detection_{self.result.detection_id}.png"
        return await save_image(self._client, self.result.processed_image_url, target)
