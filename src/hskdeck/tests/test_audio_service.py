"""Tests for pronunciation audio."""
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from gtts.tts import gTTSError

from hskdeck.services.audio_service import AudioService


@pytest.fixture
def audio(tmp_path: Path) -> AudioService:
    return AudioService(cache_dir=tmp_path, language="zh-CN", slow=False)


def test_generates_and_caches(audio: AudioService) -> None:
    """Test that gTTS is only called once per text."""
    with patch("hskdeck.services.audio_service.gTTS") as mock_gtts:
        mock_gtts.return_value.save.side_effect = lambda path: Path(path).write_bytes(b"mp3")

        first = audio.pronounce("你好")
        second = audio.pronounce("你好")

    assert first == second
    assert first.exists()
    assert first.suffix == ".mp3"
    mock_gtts.assert_called_once_with(text="你好", lang="zh-CN", slow=False)


def test_cache_path_depends_on_text(audio: AudioService) -> None:
    assert audio.cache_path("爱") != audio.cache_path("八")
    assert audio.cache_path("爱") == audio.cache_path("爱")


def test_empty_text(audio: AudioService) -> None:
    with patch("hskdeck.services.audio_service.gTTS") as mock_gtts:
        assert audio.pronounce("") is None
    mock_gtts.assert_not_called()


def test_generation_failure_returns_none(audio: AudioService) -> None:
    """Test that TTS errors are not raised to the caller."""
    tts = Mock()
    tts.save.side_effect = gTTSError("429 Too Many Requests")
    with patch("hskdeck.services.audio_service.gTTS", return_value=tts):
        assert audio.pronounce("北京") is None
    assert not audio.cache_path("北京").exists()
