"""
Background task: lecture recording ingestion.

  pending → (downloading) → transcribing → chunking → completed
                                                   ↘ failed (from any step)

Like the document pipeline, these tasks never raise; the caller polls the
lecture row for status.
"""

import logging
from datetime import datetime, timezone

from studybuddy.config import get_settings
from studybuddy.core.api_keys import get_user_api_key
from studybuddy.core.database import get_supabase_client
from studybuddy.core.exceptions import InvalidStreamUrlError
from studybuddy.features.knowledge.embedding import embed_batch
from studybuddy.features.knowledge.vector_utils import format_vector_literal
from studybuddy.features.lectures.chunking import chunk_transcript
from studybuddy.features.lectures.ffmpeg import download_and_extract_audio
from studybuddy.features.lectures.normalize import normalize_transcript
from studybuddy.features.lectures.schemas import (
    LectureChunkMetadata,
    LectureStatus,
    LectureStatusUpdate,
    TimestampedChunk,
)
from studybuddy.features.lectures.temp_files import cleanup_temp_audio, ensure_temp_dir, get_temp_audio_path
from studybuddy.features.lectures.transcription import transcribe_audio
from studybuddy.features.lectures.url_validation import validate_stream_url

logger = logging.getLogger(__name__)


def update_lecture_status(lecture_id: str, update: LectureStatusUpdate) -> None:
    """Write the set fields of `update` and stamp updated_at."""
    values = update.model_dump(mode="json", exclude_unset=True)
    values["updated_at"] = datetime.now(timezone.utc).isoformat()

    settings = get_settings()
    db = get_supabase_client()
    db.table(settings.LECTURES_TABLE).update(values).eq("id", lecture_id).execute()


def _mark_failed(lecture_id: str, error: Exception) -> None:
    try:
        update_lecture_status(lecture_id, LectureStatusUpdate(
            status=LectureStatus.FAILED,
            error_message=str(error) or type(error).__name__,
        ))
    except Exception as status_error:
        logger.error(f"Could not mark lecture {lecture_id} as failed: {status_error}")


async def ingest_lecture_chunks(
    chunks: list[TimestampedChunk],
    lecture_id: str,
    course_id: str,
    api_key: str,
) -> int:
    """Embed chunk texts in one batch and insert them into the lecture knowledge table.

    Chunks whose text is blank (windows made only of filler or dropped
    hallucinations) are skipped. Returns the number of rows inserted.
    """
    skipped = sum(1 for c in chunks if not c.text.strip())
    chunks = [c for c in chunks if c.text.strip()]
    if skipped:
        logger.info(f"Skipping {skipped} empty lecture chunks for lecture {lecture_id}")
    if not chunks:
        return 0

    embeddings = await embed_batch([c.text for c in chunks], api_key)

    rows = []
    for chunk, embedding in zip(chunks, embeddings, strict=True):
        meta = LectureChunkMetadata(
            lecture_id=lecture_id,
            course_id=course_id,
            start_seconds=chunk.start_seconds,
            end_seconds=chunk.end_seconds,
            chunk_index=chunk.chunk_index,
            title=chunk.title,
        )
        rows.append({
            "content": chunk.text,
            "meta_data": meta.model_dump(),
            "embedding": format_vector_literal(embedding),
        })

    settings = get_settings()
    db = get_supabase_client()
    db.table(settings.LECTURE_CHUNKS_TABLE).insert(rows).execute()
    logger.info(f"Inserted {len(rows)} lecture chunks for lecture {lecture_id}")
    return len(rows)


async def process_lecture_pipeline(lecture_id: str, user_id: str, course_id: str) -> None:
    """
    Background task to process a lecture whose audio is already in the temp area:
    1. Resolve the user's API key.
    2. Transcribe (direct or chunked).
    3. Normalize the transcript.
    4. Chunk (semantic, falling back to time-based).
    5. Embed + insert chunks.
    6. Remove the temp audio and mark completed.
    """
    logger.info(f"🚀 Starting lecture pipeline for {lecture_id}")

    try:
        api_key = get_user_api_key(user_id)

        update_lecture_status(lecture_id, LectureStatusUpdate(status=LectureStatus.TRANSCRIBING))
        transcription = await transcribe_audio(get_temp_audio_path(lecture_id))

        update_lecture_status(lecture_id, LectureStatusUpdate(status=LectureStatus.CHUNKING))
        segments = normalize_transcript(transcription.segments)
        chunks = await chunk_transcript(segments, api_key)

        inserted = await ingest_lecture_chunks(chunks, lecture_id, course_id, api_key)

        cleanup_temp_audio(lecture_id)

        update_lecture_status(lecture_id, LectureStatusUpdate(
            status=LectureStatus.COMPLETED,
            chunk_count=inserted,
        ))
        logger.info(f"🎉 Lecture {lecture_id} processed. Chunks: {inserted}")

    except Exception as e:
        logger.error(f"❌ Lecture pipeline failed for {lecture_id}: {e}")
        _mark_failed(lecture_id, e)


async def download_and_process_lecture(
    lecture_id: str,
    user_id: str,
    course_id: str,
    stream_url: str,
) -> None:
    """Download a lecture's HLS stream into the temp area, then run the pipeline."""
    try:
        update_lecture_status(lecture_id, LectureStatusUpdate(status=LectureStatus.DOWNLOADING))

        check = validate_stream_url(stream_url)
        if not check.valid:
            raise InvalidStreamUrlError(check.error or "Invalid stream URL")

        logger.info(f"⬇️ Downloading lecture {lecture_id} from {stream_url[:100]}")
        ensure_temp_dir()
        duration = await download_and_extract_audio(stream_url, get_temp_audio_path(lecture_id))

        update_lecture_status(lecture_id, LectureStatusUpdate(duration_seconds=round(duration)))

    except Exception as e:
        logger.error(f"❌ Lecture download failed for {lecture_id}: {e}")
        _mark_failed(lecture_id, e)
        return

    await process_lecture_pipeline(lecture_id, user_id, course_id)


def delete_lecture_chunks(lecture_id: str) -> None:
    settings = get_settings()
    db = get_supabase_client()
    db.table(settings.LECTURE_CHUNKS_TABLE).delete().eq("meta_data->>lecture_id", lecture_id).execute()
