"""Unit tests for the Groq Whisper client and direct/chunked dispatch."""

import httpx
import pytest

from studybuddy.core.exceptions import TranscriptionError
from studybuddy.features.lectures import audio_chunking, transcription
from studybuddy.features.lectures.schemas import GroqSegment, GroqTranscription, TranscriptionResult
from studybuddy.features.lectures.transcription import (
    to_transcription_result,
    transcribe_audio,
    transcribe_file,
)

VERBOSE_JSON = {
    "text": " Today we cover osmosis.",
    "language": "english",
    "segments": [
        {"id": 0, "start": 0.0, "end": 2.5, "text": " Today we cover", "avg_logprob": -0.21},
        {"id": 1, "start": 2.5, "end": 4.0, "text": " osmosis.", "avg_logprob": -0.35},
    ],
}


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "lecture.m4a"
    path.write_bytes(b"\x00" * 64)
    return str(path)


@pytest.fixture
def groq(monkeypatch, settings):
    """Route the Groq client through a mock transport; handler is swappable."""
    state = {
        "requests": [],
        "timeouts": [],
        "handler": lambda request: httpx.Response(200, json=VERBOSE_JSON),
    }

    def handle(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    def build_client(timeout):
        state["timeouts"].append(timeout)
        return httpx.AsyncClient(base_url="https://groq.test/openai/v1", transport=httpx.MockTransport(handle))

    monkeypatch.setattr(transcription, "_build_client", build_client)
    return state


class TestTranscribeFile:
    async def test_parses_verbose_json(self, groq, audio_file):
        response = await transcribe_file(audio_file, timeout=42)

        assert response.segments[1].avg_logprob == pytest.approx(-0.35)
        assert groq["timeouts"] == [42.0]

        request = groq["requests"][0]
        assert request.url.path.endswith("/audio/transcriptions")
        assert request.headers["Authorization"] == "Bearer groq-key"
        body = request.content
        assert b'name="response_format"' in body and b"verbose_json" in body
        assert b"whisper-large-v3-turbo" in body
        assert b'filename="lecture.m4a"' in body

    async def test_default_timeout(self, groq, audio_file, settings):
        await transcribe_file(audio_file)
        assert groq["timeouts"] == [float(settings.DIRECT_TRANSCRIPTION_TIMEOUT)]

    async def test_http_error_status(self, groq, audio_file):
        groq["handler"] = lambda request: httpx.Response(500, text="upstream exploded")

        with pytest.raises(TranscriptionError) as exc:
            await transcribe_file(audio_file)
        assert exc.value.code == "TRANSCRIPTION_FAILED"
        assert "500" in exc.value.message

    async def test_connection_error(self, groq, audio_file):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        groq["handler"] = refuse

        with pytest.raises(TranscriptionError) as exc:
            await transcribe_file(audio_file)
        assert exc.value.code == "CONNECTION_FAILED"

    async def test_unexpected_body(self, groq, audio_file):
        groq["handler"] = lambda request: httpx.Response(200, json={"segments": "nope"})

        with pytest.raises(TranscriptionError) as exc:
            await transcribe_file(audio_file)
        assert exc.value.code == "INVALID_RESPONSE"

    async def test_missing_file(self, groq, tmp_path):
        with pytest.raises(TranscriptionError) as exc:
            await transcribe_file(str(tmp_path / "missing.m4a"))
        assert exc.value.code == "FILE_READ_FAILED"
        assert groq["requests"] == []

    async def test_missing_key(self, groq, audio_file, settings, monkeypatch):
        monkeypatch.setattr(settings, "GROQ_API_KEY", "")

        with pytest.raises(TranscriptionError) as exc:
            await transcribe_file(audio_file)
        assert exc.value.code == "MISSING_API_KEY"


class TestToTranscriptionResult:
    def test_strips_segment_text_and_defaults_language(self):
        result = to_transcription_result(GroqTranscription(
            text="hi",
            segments=[GroqSegment(id=0, start=0, end=1, text="  hi ")],
        ))
        assert result.segments[0].text == "hi"
        assert result.detected_language == "en"


class TestTranscribeAudio:
    async def test_small_file_is_uploaded_directly(self, groq, audio_file):
        result = await transcribe_audio(audio_file)

        assert [s.text for s in result.segments] == ["Today we cover", "osmosis."]
        assert result.detected_language == "english"
        assert len(groq["requests"]) == 1

    async def test_large_file_goes_through_chunking(self, groq, audio_file, settings, monkeypatch):
        monkeypatch.setattr(settings, "MAX_DIRECT_UPLOAD_BYTES", 16)
        seen = []

        async def fake_chunked(path, chunk_length=None, overlap=None):
            seen.append(path)
            return TranscriptionResult(transcription="chunked")

        monkeypatch.setattr(audio_chunking, "transcribe_with_chunking", fake_chunked)

        result = await transcribe_audio(audio_file)

        assert result.transcription == "chunked"
        assert seen == [audio_file]
        assert groq["requests"] == []

    async def test_missing_file(self, groq, tmp_path):
        with pytest.raises(TranscriptionError) as exc:
            await transcribe_audio(str(tmp_path / "gone.m4a"))
        assert exc.value.code == "FILE_READ_FAILED"
