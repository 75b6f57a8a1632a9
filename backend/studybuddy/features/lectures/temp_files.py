"""
Lectures feature: per-lecture temp audio area.

One file per lecture id under LECTURE_TEMP_PATH; re-saving overwrites it.
Files are removed after processing, and temp_cleanup sweeps anything a
crashed run left behind.
"""

import os

from studybuddy.config import get_settings

TEMP_AUDIO_SUFFIX = ".m4a"


def get_temp_base_path() -> str:
    return get_settings().LECTURE_TEMP_PATH


def ensure_temp_dir() -> None:
    os.makedirs(get_temp_base_path(), exist_ok=True)


def get_temp_audio_path(lecture_id: str) -> str:
    return os.path.join(get_temp_base_path(), f"{lecture_id}{TEMP_AUDIO_SUFFIX}")


def save_temp_audio(lecture_id: str, audio: bytes) -> str:
    """Write uploaded audio for a lecture and return its path."""
    ensure_temp_dir()
    path = get_temp_audio_path(lecture_id)
    with open(path, "wb") as f:
        f.write(audio)
    return path


def temp_audio_exists(lecture_id: str) -> bool:
    return os.path.exists(get_temp_audio_path(lecture_id))


def cleanup_temp_audio(lecture_id: str) -> None:
    """Delete a lecture's temp audio; a missing file is not an error."""
    try:
        os.remove(get_temp_audio_path(lecture_id))
    except FileNotFoundError:
        pass
