"""
Lectures feature: transcript clean-up before chunking.

Whisper output carries conversational fillers and, during silence, stock
hallucinations ("thanks for watching"). Both hurt embedding quality, so they
are stripped, and segments stuck in a repetition loop are blanked.
"""

import re

from studybuddy.features.lectures.schemas import WhisperSegment

FILLER_WORDS = [
    "okay",
    "ok",
    "um",
    "uh",
    "uhm",
    "umm",
    "hmm",
    "like",
    "you know",
    "i mean",
    "so",
    "right",
    "alright",
    "all right",
    "yeah",
    "yep",
    "mhm",
]

WHISPER_HALLUCINATIONS = [
    "thank you",
    "thanks",
    "thanks for watching",
    "thanks for listening",
    "bye",
    "goodbye",
    "see you next time",
    "see you",
    "i have no clue what that is",
    "subscribe",
    "like and subscribe",
]

# Longest first so multi-word phrases win over their single-word prefixes
_PHRASE_PATTERNS = [
    re.compile(rf"\b{re.escape(phrase)}\b[,.]?\s*", re.IGNORECASE)
    for phrase in sorted(FILLER_WORDS + WHISPER_HALLUCINATIONS, key=len, reverse=True)
]

_WHITESPACE = re.compile(r"\s+")

GARBAGE_MIN_CHARS = 30
GARBAGE_MIN_WORDS = 4
GARBAGE_MAX_PHRASE_LEN = 5
GARBAGE_REPEAT_COUNT = 3


def remove_filler_words(text: str) -> str:
    """Strip fillers/hallucinations at word boundaries and collapse whitespace.

    "likely" and "umbrella" are untouched; a trailing comma or period after a
    filler is consumed with it. Passes repeat until nothing changes, so a
    filler exposed by an earlier removal ("you um know") goes too.
    """
    result = text
    while True:
        cleaned = result
        for pattern in _PHRASE_PATTERNS:
            cleaned = pattern.sub(" ", cleaned)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if cleaned == result:
            return cleaned
        result = cleaned


def detect_garbage(text: str) -> bool:
    """True when any 1-5 word phrase repeats 3+ times (a Whisper loop).

    Short texts are never garbage. Single words under 5 characters are not
    counted so connectors like "the" do not trip it.
    """
    if not text or len(text) < GARBAGE_MIN_CHARS:
        return False

    words = text.lower().split()
    if len(words) < GARBAGE_MIN_WORDS:
        return False

    for phrase_len in range(1, min(GARBAGE_MAX_PHRASE_LEN, len(words) // 3) + 1):
        counts: dict[str, int] = {}
        for i in range(len(words) - phrase_len + 1):
            phrase = " ".join(words[i:i + phrase_len])
            if phrase_len == 1 and len(phrase) < 5:
                continue
            counts[phrase] = counts.get(phrase, 0) + 1
            if counts[phrase] >= GARBAGE_REPEAT_COUNT:
                return True

    return False


def normalize_segment(segment: WhisperSegment) -> WhisperSegment:
    """Clean one segment; garbage keeps its slot and timestamps but loses its text."""
    cleaned = remove_filler_words(segment.text)
    return segment.model_copy(update={"text": "" if detect_garbage(cleaned) else cleaned})


def normalize_transcript(segments: list[WhisperSegment]) -> list[WhisperSegment]:
    return [normalize_segment(s) for s in segments]
