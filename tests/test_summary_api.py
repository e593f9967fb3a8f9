from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from controller.controller_dependencies import get_summary_service, get_video_info_service
from main import app
from service.video_info_service import VideoInfoService
from tests.helpers.stages import FakeAcquirer, FakeSummarizer, FakeTranscriber, make_service
from util.errors import AcquisitionFailed

VIDEO_URL = "https://www.youtube.com/watch?v=N-ZNfuCdkUo"


def _frames(body: str) -> list[dict]:
    return [
        json.loads(chunk[len("data: "):])
        for chunk in body.split("\n\n")
        if chunk.startswith("data: ")
    ]


@pytest.fixture
def wire(tmp_path):
    state: dict = {}

    def install(**kwargs):
        service = make_service(tmp_path / "jobs", **kwargs)
        acquirer = kwargs.get("acquirer") or FakeAcquirer()
        state["service"] = service
        app.dependency_overrides[get_summary_service] = lambda: service
        app.dependency_overrides[get_video_info_service] = lambda: VideoInfoService(acquirer)
        return service

    with TestClient(app) as client:
        state["client"] = client
        state["install"] = install
        yield state
    app.dependency_overrides.clear()


@pytest.mark.integration
def test_sse_streams_every_checkpoint_then_closes(wire) -> None:
    summarizer = FakeSummarizer("hi world")
    service = wire["install"](summarizer=summarizer, transcriber=FakeTranscriber("hello world"))

    res = wire["client"].get("/api/summary-sse", params={"url": VIDEO_URL, "words": 5})

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    frames = _frames(res.text)
    assert [(f["status"], f["progress"]) for f in frames] == [
        ("processing", 10),
        ("processing", 40),
        ("processing", 70),
        ("done", 100),
    ]
    assert frames[-1]["message"] == "hi world"
    assert summarizer.calls == [("hello world", 5, None)]
    assert service.admission.in_flight_count() == 0


@pytest.mark.integration
def test_sse_transcript_only_mode(wire) -> None:
    summarizer = FakeSummarizer()
    wire["install"](summarizer=summarizer)

    res = wire["client"].get(
        "/api/summary-sse", params={"url": VIDEO_URL, "transcriptOnly": "true"}
    )

    frames = _frames(res.text)
    assert frames[-1] == {"status": "done", "message": "hello world", "progress": 100}
    assert summarizer.calls == []


@pytest.mark.integration
def test_sse_reports_pipeline_failure_as_error_frame(wire) -> None:
    wire["install"](acquirer=FakeAcquirer(fail=AcquisitionFailed("Private video")))

    res = wire["client"].get("/api/summary-sse", params={"url": VIDEO_URL})

    assert res.status_code == 200
    frames = _frames(res.text)
    assert frames[-1] == {"status": "error", "message": "Private video", "progress": 10}


@pytest.mark.integration
def test_busy_server_rejects_with_503_not_an_error_frame(wire) -> None:
    service = wire["install"](capacity=1)
    service.admission.try_admit("someone-else")

    res = wire["client"].get("/api/summary-sse", params={"url": VIDEO_URL})

    assert res.status_code == 503
    assert res.json()["detail"] == "Server is busy. Please try again later."


@pytest.mark.integration
def test_blocking_summary_endpoint(wire) -> None:
    wire["install"](summarizer=FakeSummarizer("short summary"))

    res = wire["client"].get(
        "/api/summary", params={"url": VIDEO_URL, "words": 50, "prompt": "bullet points"}
    )

    assert res.status_code == 200
    assert res.json() == {"data": "short summary"}


@pytest.mark.integration
def test_transcript_endpoint_skips_summary(wire) -> None:
    summarizer = FakeSummarizer()
    wire["install"](summarizer=summarizer, transcriber=FakeTranscriber("every word"))

    res = wire["client"].get("/api/transcript", params={"url": VIDEO_URL})

    assert res.json() == {"data": "every word"}
    assert summarizer.calls == []


@pytest.mark.integration
def test_acquisition_failure_maps_to_400_with_message(wire) -> None:
    wire["install"](acquirer=FakeAcquirer(fail=AcquisitionFailed("Video unavailable")))

    res = wire["client"].get("/api/summary", params={"url": VIDEO_URL})

    assert res.status_code == 400
    assert res.json()["detail"] == "Video unavailable"


@pytest.mark.integration
def test_processing_failure_maps_to_502_generic(wire) -> None:
    wire["install"](summarizer=FakeSummarizer(fail=RuntimeError("upstream 529 overloaded")))

    res = wire["client"].get("/api/summary", params={"url": VIDEO_URL})

    assert res.status_code == 502
    assert "overloaded" not in res.json()["detail"]


@pytest.mark.integration
@pytest.mark.parametrize(
    "params",
    [
        {"url": "https://www.youtube.com/shorts/abc"},
        {"url": VIDEO_URL, "words": 0},
        {"url": VIDEO_URL, "words": 100000},
    ],
)
def test_invalid_requests_are_rejected_before_admission(wire, params) -> None:
    service = wire["install"]()

    res = wire["client"].get("/api/summary", params=params)

    assert res.status_code == 400
    assert service.admission.in_flight_count() == 0


@pytest.mark.integration
def test_status_reports_capacity_and_in_flight(wire) -> None:
    service = wire["install"](capacity=3)
    service.admission.try_admit("busy-job")

    body = wire["client"].get("/api/status").json()

    assert body["running"] is True
    assert body["activeRequests"] == 1
    assert body["capacity"] == 3
    assert body["uptime"] >= 0


@pytest.mark.integration
def test_info_endpoint_returns_metadata(wire) -> None:
    acquirer = FakeAcquirer()
    acquirer.info = {
        "id": "N-ZNfuCdkUo",
        "title": "A talk",
        "description": "about things",
        "thumbnails": [{"url": "https://i.ytimg.com/small.jpg"}, {"url": "https://i.ytimg.com/big.jpg"}],
        "uploader": "Some Channel",
        "duration": 120.0,
    }
    wire["install"](acquirer=acquirer)

    res = wire["client"].get("/api/info", params={"url": VIDEO_URL})

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "data": {
            "id": "N-ZNfuCdkUo",
            "title": "A talk",
            "description": "about things",
            "thumbnailUrl": "https://i.ytimg.com/big.jpg",
            "channel": "Some Channel",
            "duration": 120,
        },
    }


@pytest.mark.integration
def test_healthz(wire) -> None:
    assert wire["client"].get("/healthz").json() == {"ok": True}


@pytest.mark.integration
def test_upload_summary_runs_through_the_same_pipeline(wire, tmp_path) -> None:
    transcriber = FakeTranscriber("uploaded words")
    summarizer = FakeSummarizer("upload summary")
    service = wire["install"](transcriber=transcriber, summarizer=summarizer)

    res = wire["client"].post(
        "/api/summary/upload",
        params={"words": 30, "prompt": "short"},
        files={"file": ("talk.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
    )

    assert res.status_code == 200
    assert res.json() == {"data": "upload summary"}
    assert transcriber.calls[0].path.name == "audio.mp4"
    assert transcriber.calls[0].size_bytes == 12
    assert summarizer.calls == [("uploaded words", 30, "short")]
    assert service.admission.in_flight_count() == 0
    assert list((tmp_path / "jobs").iterdir()) == []


@pytest.mark.integration
def test_upload_sse_streams_progress(wire) -> None:
    wire["install"]()

    res = wire["client"].post(
        "/api/summary-sse/upload",
        files={"file": ("clip.mp3", b"ID3audio", "audio/mpeg")},
    )

    frames = _frames(res.text)
    assert [f["progress"] for f in frames] == [10, 40, 70, 100]
    assert frames[-1]["message"] == "hi world"


@pytest.mark.integration
def test_upload_transcript_skips_summary(wire) -> None:
    summarizer = FakeSummarizer()
    wire["install"](summarizer=summarizer, transcriber=FakeTranscriber("every word"))

    res = wire["client"].post(
        "/api/transcript/upload",
        files={"file": ("clip.m4a", b"audio-bytes", "audio/mp4")},
    )

    assert res.json() == {"data": "every word"}
    assert summarizer.calls == []


@pytest.mark.integration
def test_upload_rejects_unsupported_type(wire) -> None:
    service = wire["install"]()

    res = wire["client"].post(
        "/api/summary/upload",
        files={"file": ("notes.pdf", b"%PDF-1.7", "application/pdf")},
    )

    assert res.status_code == 400
    assert res.json()["detail"].startswith("Unsupported file type: .pdf")
    assert service.admission.in_flight_count() == 0


@pytest.mark.integration
def test_upload_over_limit_is_413(wire, monkeypatch) -> None:
    from config.settings import settings

    monkeypatch.setattr(settings, "MAX_UPLOAD_MB", 1)
    service = wire["install"]()

    res = wire["client"].post(
        "/api/summary/upload",
        files={"file": ("big.mp3", b"x" * (1024 * 1024 + 1), "audio/mpeg")},
    )

    assert res.status_code == 413
    assert res.json()["detail"] == {"ok": False, "error": "file_too_large", "maxMb": 1}
    assert service.admission.in_flight_count() == 0


@pytest.mark.integration
def test_upload_shares_admission_with_url_jobs(wire) -> None:
    service = wire["install"](capacity=1)
    service.admission.try_admit("url-job")

    res = wire["client"].post(
        "/api/summary/upload",
        files={"file": ("clip.mp3", b"ID3audio", "audio/mpeg")},
    )

    assert res.status_code == 503


class _GoneRequest:
    """Request stand-in whose client has already disconnected."""

    headers: dict = {}
    client = None

    async def is_disconnected(self) -> bool:
        return True


@pytest.mark.integration
@pytest.mark.asyncio
async def test_blocking_wait_cancels_job_when_client_leaves(tmp_path, monkeypatch) -> None:
    from fastapi import HTTPException

    from controller import summary_controller
    from model.job import JobRequest

    monkeypatch.setattr(summary_controller, "DISCONNECT_POLL_SECONDS", 0.01)
    acquirer = FakeAcquirer(gate=asyncio.Event())
    service = make_service(tmp_path, acquirer=acquirer)
    handle = service.submit(JobRequest(source_ref=VIDEO_URL)).handle

    with pytest.raises(HTTPException) as exc_info:
        await summary_controller._await_text(_GoneRequest(), handle)

    assert exc_info.value.status_code == 499
    assert handle.done
    assert service.admission.in_flight_count() == 0
    assert list(tmp_path.iterdir()) == []
