import pytest

from service.video_info_service import to_video_info
from util.functions import format_bytes, format_duration, is_youtube_url


@pytest.mark.unit
@pytest.mark.parametrize(
    "url,ok",
    [
        ("https://www.youtube.com/watch?v=N-ZNfuCdkUo", True),
        ("https://youtube.com/watch?v=abc&t=10", True),
        ("https://youtu.be/abc", False),
        ("", False),
        (None, False),
    ],
)
def test_is_youtube_url(url, ok) -> None:
    assert is_youtube_url(url) is ok


@pytest.mark.unit
def test_format_duration() -> None:
    assert format_duration(5) == "5s"
    assert format_duration(65) == "1m 5s"
    assert format_duration(3600) == "1h 0m 0s"
    assert format_duration(-3) == "0s"


@pytest.mark.unit
def test_format_bytes() -> None:
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 KB"
    assert format_bytes(26 * 1024 * 1024) == "26.0 MB"
    assert format_bytes(3 * 1024 ** 3) == "3.0 GB"


@pytest.mark.unit
def test_video_info_prefers_explicit_thumbnail_and_channel() -> None:
    info = to_video_info(
        {
            "id": "abc",
            "title": "Title",
            "thumbnail": "https://i.ytimg.com/main.jpg",
            "thumbnails": [{"url": "https://i.ytimg.com/other.jpg"}],
            "channel": "Chan",
            "uploader": "Uploader",
            "duration": 61.7,
        }
    )
    assert info.thumbnailUrl == "https://i.ytimg.com/main.jpg"
    assert info.channel == "Chan"
    assert info.duration == 61


@pytest.mark.unit
def test_video_info_tolerates_missing_fields() -> None:
    info = to_video_info({})
    assert info.id == ""
    assert info.thumbnailUrl is None
    assert info.duration is None
