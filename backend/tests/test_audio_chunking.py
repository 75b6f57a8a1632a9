"""Unit tests for windowed transcription: planning, channel choice and overlap merge."""

import asyncio
import os

import pytest

from studybuddy.core.exceptions import TranscriptionError
from studybuddy.features.lectures import audio_chunking
from studybuddy.features.lectures.audio_chunking import (
    find_longest_common_sequence,
    merge_transcripts,
    plan_windows,
    select_channel,
    transcribe_with_chunking,
)
from studybuddy.features.lectures.schemas import (
    GroqSegment,
    GroqTranscription,
    WhisperSegment,
    WindowTranscription,
)


def window(index: int, start: float, segments: list[tuple[float, float, str]], language="en"):
    return WindowTranscription(
        index=index,
        start=start,
        result=GroqTranscription(
            text=" ".join(text for _, _, text in segments),
            segments=[
                GroqSegment(id=i, start=s, end=e, text=text)
                for i, (s, e, text) in enumerate(segments)
            ],
            language=language,
        ),
    )


def probe_reply(logprob: float | None) -> GroqTranscription:
    return GroqTranscription(
        text="probe",
        segments=[GroqSegment(id=0, start=0, end=5, text="probe", avg_logprob=logprob)],
    )


@pytest.fixture
def ffmpeg_calls(monkeypatch):
    """Record window extractions instead of running ffmpeg."""
    calls = []

    async def fake_extract(source, output, start, duration, channel=None):
        assert os.path.isdir(os.path.dirname(output))
        calls.append({"output": output, "start": start, "duration": duration, "channel": channel})
        return output

    monkeypatch.setattr(audio_chunking, "extract_audio_window", fake_extract)
    return calls


class TestPlanWindows:
    def test_last_window_is_clipped(self):
        windows = plan_windows(1500, 600, 10)
        assert [(w.index, w.start, w.duration) for w in windows] == [
            (0, 0, 600),
            (1, 590, 600),
            (2, 1180, 320),
        ]

    def test_short_recording_is_one_window(self):
        windows = plan_windows(300, 600, 10)
        assert [(w.start, w.duration) for w in windows] == [(0, 300)]

    def test_nothing_to_plan(self):
        assert plan_windows(0) == []
        assert plan_windows(100, chunk_length=10, overlap=10) == []


class TestFindLongestCommonSequence:
    def test_overlap_appears_once(self):
        merged = find_longest_common_sequence([
            "the mitochondria is",
            "the mitochondria is the powerhouse",
        ])
        assert merged == "the mitochondria is the powerhouse"

    def test_case_insensitive_alignment(self):
        merged = find_longest_common_sequence(["The Cell Wall", "the cell wall is rigid"])
        assert merged == "The cell wall is rigid"

    def test_no_alignment_concatenates(self):
        assert find_longest_common_sequence(["a b c", "x y z"]) == "a b c x y z"

    def test_single_and_empty(self):
        assert find_longest_common_sequence(["only one"]) == "only one"
        assert find_longest_common_sequence([]) == ""


class TestMergeTranscripts:
    def test_overlap_segment_is_reconciled(self):
        first = window(0, 0, [(0, 580, "Cells are the unit of life"), (585, 600, "the mitochondria is")])
        second = window(1, 590, [(0, 8, "the mitochondria is the powerhouse"), (12, 30, "of the cell")])

        merged = merge_transcripts([second, first], overlap_seconds=10)

        assert merged.segments[0] == WhisperSegment(
            id=0, start=0, end=580, text="Cells are the unit of life"
        )
        assert merged.segments[1] == WhisperSegment(
            id=1, start=585, end=598, text="the mitochondria is the powerhouse"
        )
        assert merged.segments[-1] == WhisperSegment(id=3, start=602, end=620, text="of the cell")
        assert [s.id for s in merged.segments] == [0, 1, 2, 3]
        assert merged.transcription == " ".join(s.text for s in merged.segments)

    def test_window_without_tail_passes_through(self):
        first = window(0, 0, [(0, 500, "first part")])
        second = window(1, 590, [(0, 20, "second part")])

        merged = merge_transcripts([first, second], overlap_seconds=10)

        assert [(s.start, s.end, s.text) for s in merged.segments] == [
            (0, 500, "first part"),
            (590, 610, "second part"),
        ]

    def test_single_window_ids_are_renumbered(self):
        only = WindowTranscription(
            index=0,
            start=0,
            result=GroqTranscription(
                text="a b",
                segments=[
                    GroqSegment(id=7, start=0, end=1, text=" a "),
                    GroqSegment(id=9, start=1, end=2, text="b"),
                ],
                language="de",
            ),
        )
        merged = merge_transcripts([only], overlap_seconds=10)

        assert [(s.id, s.text) for s in merged.segments] == [(0, "a"), (1, "b")]
        assert merged.detected_language == "de"

    def test_empty(self):
        merged = merge_transcripts([], overlap_seconds=10)
        assert merged.transcription == ""
        assert merged.segments == []
        assert merged.detected_language == "en"


class TestSelectChannel:
    async def test_mono_needs_no_probe(self, settings, ffmpeg_calls, tmp_path):
        assert await select_channel("in.m4a", 600, 1, str(tmp_path)) == 0
        assert ffmpeg_calls == []

    async def test_picks_more_confident_channel(self, settings, ffmpeg_calls, monkeypatch, tmp_path):
        async def fake_transcribe(path, timeout=None):
            return probe_reply(-0.9 if "probe_c0" in path else -0.2)

        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        assert await select_channel("in.m4a", 600, 2, str(tmp_path)) == 1
        assert sorted(c["channel"] for c in ffmpeg_calls) == [0, 1]
        # 30s probe centered on the midpoint
        assert {(c["start"], c["duration"]) for c in ffmpeg_calls} == {(285, 30)}

    async def test_tie_keeps_channel_zero(self, settings, ffmpeg_calls, monkeypatch, tmp_path):
        async def fake_transcribe(path, timeout=None):
            return probe_reply(None)

        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        assert await select_channel("in.m4a", 600, 2, str(tmp_path)) == 0

    async def test_probe_failure_defaults_to_channel_zero(self, settings, ffmpeg_calls, monkeypatch, tmp_path):
        async def fake_transcribe(path, timeout=None):
            if "probe_c1" in path:
                raise TranscriptionError("boom", "TRANSCRIPTION_FAILED")
            return probe_reply(-0.1)

        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        assert await select_channel("in.m4a", 600, 2, str(tmp_path)) == 0

    async def test_slower_channel_settles_before_returning(self, settings, ffmpeg_calls, monkeypatch, tmp_path):
        finished = []

        async def fake_transcribe(path, timeout=None):
            if "probe_c0" in path:
                raise TranscriptionError("boom", "TRANSCRIPTION_FAILED")
            await asyncio.sleep(0.05)
            finished.append(1)
            return probe_reply(-0.1)

        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        assert await select_channel("in.m4a", 600, 2, str(tmp_path)) == 0
        # The channel-1 probe ran to completion, nothing is left running
        assert finished == [1]

    async def test_short_recording_probes_from_start(self, settings, ffmpeg_calls, monkeypatch, tmp_path):
        async def fake_transcribe(path, timeout=None):
            return probe_reply(-0.5)

        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        await select_channel("in.m4a", 20, 2, str(tmp_path))
        assert {(c["start"], c["duration"]) for c in ffmpeg_calls} == {(0, 20)}


class TestTranscribeWithChunking:
    @pytest.fixture
    def probes(self, monkeypatch):
        state = {"duration": 1200.0, "channels": 1}

        async def fake_duration(path):
            return state["duration"]

        async def fake_channels(path):
            return state["channels"]

        monkeypatch.setattr(audio_chunking, "probe_duration", fake_duration)
        monkeypatch.setattr(audio_chunking, "probe_channels", fake_channels)
        return state

    async def test_windows_are_transcribed_in_order_and_merged(
        self, settings, probes, ffmpeg_calls, monkeypatch
    ):
        transcribed = []

        async def fake_transcribe(path, timeout=None):
            transcribed.append((os.path.basename(path), timeout))
            return GroqTranscription(
                text=os.path.basename(path),
                segments=[GroqSegment(id=0, start=0, end=5, text=os.path.basename(path))],
                language="en",
            )

        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        result = await transcribe_with_chunking("lecture.m4a", chunk_length=600, overlap=10)

        assert [name for name, _ in transcribed] == ["chunk_000.flac", "chunk_001.flac", "chunk_002.flac"]
        assert all(timeout == settings.CHUNK_TRANSCRIPTION_TIMEOUT for _, timeout in transcribed)
        assert [(c["start"], c["duration"], c["channel"]) for c in ffmpeg_calls] == [
            (0, 600, None),
            (590, 600, None),
            (1180, 20, None),
        ]
        assert [s.start for s in result.segments] == [0, 590, 1180]
        assert not os.path.exists(os.path.dirname(ffmpeg_calls[0]["output"]))

    async def test_stereo_uses_selected_channel(self, settings, probes, ffmpeg_calls, monkeypatch):
        probes["duration"] = 300.0
        probes["channels"] = 2

        async def fake_select(path, duration, channels, work_dir):
            return 1

        async def fake_transcribe(path, timeout=None):
            return GroqTranscription(text="x", segments=[])

        monkeypatch.setattr(audio_chunking, "select_channel", fake_select)
        monkeypatch.setattr(audio_chunking, "transcribe_file", fake_transcribe)

        await transcribe_with_chunking("lecture.m4a")

        assert [c["channel"] for c in ffmpeg_calls] == [1]

    async def test_work_dir_removed_on_failure(self, settings, probes, ffmpeg_calls, monkeypatch):
        async def failing_transcribe(path, timeout=None):
            raise TranscriptionError("Groq transcription failed: 500", "TRANSCRIPTION_FAILED")

        monkeypatch.setattr(audio_chunking, "transcribe_file", failing_transcribe)

        with pytest.raises(TranscriptionError):
            await transcribe_with_chunking("lecture.m4a")

        assert not os.path.exists(os.path.dirname(ffmpeg_calls[0]["output"]))

    async def test_missing_key_fails_before_probing(self, settings, probes, monkeypatch):
        monkeypatch.setattr(settings, "GROQ_API_KEY", "")

        async def never_called(path):
            raise AssertionError("should not probe without a key")

        monkeypatch.setattr(audio_chunking, "probe_duration", never_called)

        with pytest.raises(TranscriptionError) as exc:
            await transcribe_with_chunking("lecture.m4a")
        assert exc.value.code == "MISSING_API_KEY"
