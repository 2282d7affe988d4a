"""DetectionSession state machine — upload/detect pipeline, failures, superseded attempts."""
from __future__ import annotations

import asyncio

import pytest

from api.exceptions import ApiResponseError, ApiTransportError
from common.classes import ALL_CLASSES, ClassLabel
from common.types import ImageFile
from detection import (
    DetectionSession,
    InvalidTransitionError,
    NoFileSelectedError,
    SessionBusyError,
    SessionStatus,
)
from storage.images import ImageExportError
from tests.fakes import detect_response


def _other_file() -> ImageFile:
    return ImageFile(name="fjord.png", content=b"\x89PNGfake", content_type="image/png")


# ---------- Selection / reset ----------

class TestSelection:
    def test_starts_idle(self, session: DetectionSession):
        assert session.status is SessionStatus.IDLE
        assert session.file is None

    def test_select_file_enters_file_selected(self, session, image_file):
        session.select_file(image_file)
        assert session.status is SessionStatus.FILE_SELECTED
        assert session.file is image_file

    def test_reselect_replaces_file(self, session, image_file):
        session.select_file(image_file)
        session.select_file(_other_file())
        assert session.file.name == "fjord.png"

    def test_reset_discards_everything(self, session, image_file):
        session.select_file(image_file)
        session.reset()
        assert session.status is SessionStatus.IDLE
        assert session.file is None
        assert session.result is None
        assert session.error is None

    @pytest.mark.asyncio
    async def test_select_file_while_uploading_raises(self, session, fake_client, image_file):
        gate = asyncio.get_running_loop().create_future()
        fake_client.uploads.append(gate)
        session.select_file(image_file)
        task = asyncio.create_task(session.run(ALL_CLASSES))
        await asyncio.sleep(0)

        with pytest.raises(InvalidTransitionError):
            session.select_file(_other_file())
        assert session.file is image_file

        gate.set_result(ApiTransportError("down"))
        await task


# ---------- Successful pipeline ----------

class TestRunSuccess:
    @pytest.mark.asyncio
    async def test_run_ends_ready_with_derived_urls(self, session, fake_client, image_file):
        fake_client.uploads.append("uploads/abc.jpg")
        fake_client.detections.append(detect_response(processed_image_key="processed/abc.png"))
        session.select_file(image_file)

        status = await session.run(ALL_CLASSES)

        assert status is SessionStatus.READY
        result = session.result
        assert result.image_key == "uploads/abc.jpg"
        assert result.processed_image_key == "processed/abc.png"
        assert result.original_image_url == "http://storage.test/detections/uploads/abc.jpg"
        assert result.processed_image_url == "http://storage.test/detections/processed/abc.png"
        assert result.detection_id == 17
        assert session.uploaded_key == "uploads/abc.jpg"
        assert session.error is None

    @pytest.mark.asyncio
    async def test_upload_precedes_detect_with_uploaded_key(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response())
        session.select_file(image_file)

        await session.run({ClassLabel.YACHT})

        assert [name for name, _ in fake_client.calls] == ["upload", "detect"]
        assert fake_client.calls_of("upload") == [image_file]
        assert fake_client.calls_of("detect") == [("key-1", ["яхта"])]

    @pytest.mark.asyncio
    async def test_full_class_set_is_sent_explicitly(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response())
        session.select_file(image_file)

        await session.run(set(ALL_CLASSES))

        _, classes = fake_client.calls_of("detect")[0]
        assert classes == [label.value for label in ALL_CLASSES]

    @pytest.mark.asyncio
    async def test_empty_class_set_is_sent(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response(object_count=0, object_classes=[]))
        session.select_file(image_file)

        assert await session.run(set()) is SessionStatus.READY
        assert fake_client.calls_of("detect") == [("key-1", [])]

    @pytest.mark.asyncio
    async def test_states_pass_through_uploading_and_detecting(self, session, fake_client, image_file):
        loop = asyncio.get_running_loop()
        upload_gate, detect_gate = loop.create_future(), loop.create_future()
        fake_client.uploads.append(upload_gate)
        fake_client.detections.append(detect_gate)
        session.select_file(image_file)

        task = asyncio.create_task(session.run(ALL_CLASSES))
        await asyncio.sleep(0)
        assert session.status is SessionStatus.UPLOADING

        upload_gate.set_result("key-1")
        await asyncio.sleep(0)
        assert session.status is SessionStatus.DETECTING

        detect_gate.set_result(detect_response())
        assert await task is SessionStatus.READY

    @pytest.mark.asyncio
    async def test_result_class_summaries(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(
            detect_response(object_classes=["балкер", "яхта", "балкер"], object_count=3)
        )
        session.select_file(image_file)
        await session.run(ALL_CLASSES)

        assert session.class_counts() == {"балкер": 2, "яхта": 1}
        assert session.detected_classes() == ["балкер", "яхта"]

    def test_summaries_empty_without_result(self, session):
        assert session.class_counts() == {}
        assert session.detected_classes() == []

    @pytest.mark.asyncio
    async def test_new_file_after_ready_clears_result(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response())
        session.select_file(image_file)
        await session.run(ALL_CLASSES)

        session.select_file(_other_file())
        assert session.status is SessionStatus.FILE_SELECTED
        assert session.result is None
        assert session.uploaded_key is None


# ---------- Failures ----------

class TestRunFailure:
    @pytest.mark.asyncio
    async def test_upload_failure_skips_detect(self, session, fake_client, image_file):
        fake_client.uploads.append(ApiTransportError("connection refused"))
        session.select_file(image_file)

        status = await session.run(ALL_CLASSES)

        assert status is SessionStatus.FAILED
        assert "Upload failed" in session.error
        assert fake_client.calls_of("detect") == []
        assert session.file is image_file

    @pytest.mark.asyncio
    async def test_detect_failure(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(ApiResponseError("server error", status_code=500))
        session.select_file(image_file)

        status = await session.run(ALL_CLASSES)

        assert status is SessionStatus.FAILED
        assert "Detection failed" in session.error
        assert session.result is None
        assert session.file is image_file

    @pytest.mark.asyncio
    async def test_retry_after_failure_without_reselecting(self, session, fake_client, image_file):
        fake_client.uploads.extend([ApiTransportError("timeout"), "key-2"])
        fake_client.detections.append(detect_response())
        session.select_file(image_file)

        assert await session.run(ALL_CLASSES) is SessionStatus.FAILED
        assert await session.run(ALL_CLASSES) is SessionStatus.READY
        assert session.error is None
        assert fake_client.calls_of("upload") == [image_file, image_file]

    @pytest.mark.asyncio
    async def test_unusable_processed_key_fails_and_keeps_file(self, session, fake_client, image_file):
        fake_client.uploads.extend(["key-1", "key-2"])
        fake_client.detections.extend(
            [detect_response(processed_image_key="a/../b.png"), detect_response()]
        )
        session.select_file(image_file)

        assert await session.run(ALL_CLASSES) is SessionStatus.FAILED
        assert "Detection failed" in session.error
        assert session.result is None
        assert session.file is image_file

        assert await session.run(ALL_CLASSES) is SessionStatus.READY

    @pytest.mark.asyncio
    async def test_blank_uploaded_key_fails(self, session, fake_client, image_file):
        fake_client.uploads.append("   ")
        fake_client.detections.append(detect_response())
        session.select_file(image_file)

        assert await session.run(ALL_CLASSES) is SessionStatus.FAILED
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_select_new_file_after_failure(self, session, fake_client, image_file):
        fake_client.uploads.append(ApiTransportError("timeout"))
        session.select_file(image_file)
        await session.run(ALL_CLASSES)

        session.select_file(_other_file())
        assert session.status is SessionStatus.FILE_SELECTED
        assert session.error is None


# ---------- Rejected runs ----------

class TestRejectedRuns:
    @pytest.mark.asyncio
    async def test_run_without_file(self, session, fake_client):
        with pytest.raises(NoFileSelectedError):
            await session.run(ALL_CLASSES)
        assert session.status is SessionStatus.IDLE
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_run_while_in_flight(self, session, fake_client, image_file):
        gate = asyncio.get_running_loop().create_future()
        fake_client.uploads.append(gate)
        fake_client.detections.append(detect_response())
        session.select_file(image_file)

        first = asyncio.create_task(session.run(ALL_CLASSES))
        await asyncio.sleep(0)
        with pytest.raises(SessionBusyError):
            await session.run(ALL_CLASSES)

        gate.set_result("key-1")
        assert await first is SessionStatus.READY
        assert len(fake_client.calls_of("upload")) == 1

    @pytest.mark.asyncio
    async def test_run_from_ready_is_invalid(self, session, fake_client, image_file):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response())
        session.select_file(image_file)
        await session.run(ALL_CLASSES)

        with pytest.raises(InvalidTransitionError):
            await session.run(ALL_CLASSES)
        assert session.status is SessionStatus.READY


# ---------- Superseded attempts ----------

class TestSupersededAttempts:
    @pytest.mark.asyncio
    async def test_reset_during_upload_discards_result(self, session, fake_client, image_file):
        gate = asyncio.get_running_loop().create_future()
        fake_client.uploads.append(gate)
        session.select_file(image_file)

        task = asyncio.create_task(session.run(ALL_CLASSES))
        await asyncio.sleep(0)
        session.reset()
        gate.set_result("late-key")

        assert await task is SessionStatus.IDLE
        assert session.uploaded_key is None
        assert fake_client.calls_of("detect") == []

    @pytest.mark.asyncio
    async def test_reset_during_detect_discards_result(self, session, fake_client, image_file):
        gate = asyncio.get_running_loop().create_future()
        fake_client.uploads.append("key-1")
        fake_client.detections.append(gate)
        session.select_file(image_file)

        task = asyncio.create_task(session.run(ALL_CLASSES))
        await asyncio.sleep(0)
        assert session.status is SessionStatus.DETECTING
        session.reset()
        session.select_file(_other_file())
        gate.set_result(detect_response())

        assert await task is SessionStatus.FILE_SELECTED
        assert session.result is None
        assert session.file.name == "fjord.png"

    @pytest.mark.asyncio
    async def test_late_failure_does_not_mark_new_attempt_failed(self, session, fake_client, image_file):
        gate = asyncio.get_running_loop().create_future()
        fake_client.uploads.append(gate)
        session.select_file(image_file)

        task = asyncio.create_task(session.run(ALL_CLASSES))
        await asyncio.sleep(0)
        session.reset()
        gate.set_result(ApiTransportError("late failure"))

        await task
        assert session.status is SessionStatus.IDLE
        assert session.error is None


# ---------- Export ----------

class TestExport:
    @pytest.mark.asyncio
    async def test_export_writes_named_file(self, session, fake_client, image_file, tmp_path):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response(detection_id=99))
        fake_client.downloads.append(b"png-bytes")
        session.select_file(image_file)
        await session.run(ALL_CLASSES)

        path = await session.export_result(tmp_path)

        assert path == tmp_path / "detection_99.png"
        assert path.read_bytes() == b"png-bytes"
        assert fake_client.calls_of("download") == [session.result.processed_image_url]

    @pytest.mark.asyncio
    async def test_export_failure_keeps_session_ready(self, session, fake_client, image_file, tmp_path):
        fake_client.uploads.append("key-1")
        fake_client.detections.append(detect_response())
        fake_client.downloads.append(ApiTransportError("storage offline"))
        session.select_file(image_file)
        await session.run(ALL_CLASSES)

        with pytest.raises(ImageExportError):
            await session.export_result(tmp_path)
        assert session.status is SessionStatus.READY
        assert session.result is not None

    @pytest.mark.asyncio
    async def test_export_without_result(self, session, tmp_path):
        with pytest.raises(InvalidTransitionError):
            await session.export_result(tmp_path)
