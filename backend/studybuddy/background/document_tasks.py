"""
Background task: slide-deck ingestion.

Hand `process_document_pipeline` to `BackgroundTasks.add_task` (or any event
loop) after the upload row exists. The task never raises: failures end up in
the row's `status` / `error_message` columns.
"""

import logging
from datetime import datetime, timezone

from studybuddy.config import get_settings
from studybuddy.core.api_keys import get_user_api_key
from studybuddy.core.database import get_supabase_client
from studybuddy.features.documents.chunk_ingestion import (
    delete_document_chunks,
    generate_chunk_embeddings,
    insert_chunks,
    prepare_chunks,
)
from studybuddy.features.documents.deduplication import deduplicate_by_embeddings, deduplicate_pages
from studybuddy.features.documents.page_processor import process_pages
from studybuddy.features.documents.pdf_pages import rebuild_pdf_without_pages, split_pdf_into_pages
from studybuddy.features.documents.schemas import DocumentStatus, DocumentStatusUpdate
from studybuddy.features.documents.storage import delete_document_files, store_document

logger = logging.getLogger(__name__)


def update_document_status(document_id: str, update: DocumentStatusUpdate) -> None:
    """Write only the fields that were explicitly set on `update`."""
    values = update.model_dump(mode="json", exclude_unset=True)
    if not values:
        return
    settings = get_settings()
    db = get_supabase_client()
    db.table(settings.DOCUMENTS_TABLE).update(values).eq("id", document_id).execute()


async def process_document_pipeline(
    document_id: str,
    pdf_bytes: bytes,
    user_id: str,
    course_id: str,
    filename: str,
) -> None:
    """
    Background task to process an uploaded slide deck:
    1. Resolve the user's API key (BYOK or shared).
    2. Split the PDF into single-page PDFs, record page_count.
    3. Extract every page (bounded concurrency, retries).
    4. Jaccard dedup on extracted text (before paying for embeddings).
    5. Embed the survivors.
    6. Cosine dedup on embeddings.
    7. Insert one chunk per unique slide.
    8. Rebuild a lean PDF without any duplicate page.
    9. Store the lean PDF.
    10. Mark the document completed.
    """
    logger.info(f"🚀 Starting document pipeline for {document_id} ({filename})")

    try:
        # 1. API key
        api_key = get_user_api_key(user_id)

        # 2. Split
        pages = split_pdf_into_pages(pdf_bytes)
        update_document_status(document_id, DocumentStatusUpdate(page_count=len(pages)))

        # 3. Extract
        page_results = await process_pages(pages, api_key)
        failed_pages = [r.page_number for r in page_results if not r.success]

        # 4. Text dedup
        text_dedup = deduplicate_pages(page_results)
        logger.info(f"Phase 1 (Jaccard): {len(text_dedup.duplicate_indices)} text duplicates removed")

        # 5. Embed
        embeddings = await generate_chunk_embeddings(text_dedup.unique, api_key)

        # 6. Semantic dedup; indices point into text_dedup.unique
        vector_dedup = deduplicate_by_embeddings(embeddings)
        logger.info(f"Phase 2 (Cosine): {len(vector_dedup.duplicate_indices)} semantic duplicates removed")

        semantic_duplicate_pages = [
            text_dedup.unique[i].page_number for i in vector_dedup.duplicate_indices
        ]
        all_duplicate_pages = text_dedup.duplicate_indices + semantic_duplicate_pages

        unique_pages = [text_dedup.unique[i] for i in vector_dedup.unique_indices]
        unique_embeddings = [embeddings[i] for i in vector_dedup.unique_indices]

        # 7. Insert
        chunks = prepare_chunks(unique_pages, unique_embeddings)
        insert_chunks(chunks, document_id, course_id, user_id, filename)

        # 8-9. Lean PDF
        lean_pdf = rebuild_pdf_without_pages(pdf_bytes, all_duplicate_pages)
        processed_path = store_document(lean_pdf, user_id, document_id, "processed")

        # 10. Done
        update_document_status(document_id, DocumentStatusUpdate(
            status=DocumentStatus.COMPLETED,
            unique_page_count=len(unique_pages),
            failed_pages=failed_pages or None,
            processed_file_path=processed_path,
            processed_at=datetime.now(timezone.utc),
        ))

        logger.info(
            f"🎉 Document {document_id} processed. Pages: {len(pages)}, "
            f"Unique: {len(unique_pages)}, Duplicates: {len(all_duplicate_pages)} "
            f"(Jaccard: {len(text_dedup.duplicate_indices)}, "
            f"Cosine: {len(vector_dedup.duplicate_indices)}), Failed: {len(failed_pages)}"
        )

    except Exception as e:
        logger.error(f"❌ Document pipeline failed for {document_id}: {e}")
        try:
            update_document_status(document_id, DocumentStatusUpdate(
                status=DocumentStatus.FAILED,
                error_message=str(e) or type(e).__name__,
            ))
        except Exception as status_error:
            logger.error(f"Could not mark document {document_id} as failed: {status_error}")


def delete_document_pipeline(document_id: str, user_id: str) -> None:
    """
    Background task to delete a document:
    1. Delete its slide chunks
    2. Delete stored PDFs (best effort)
    3. Delete the record
    """
    settings = get_settings()
    db = get_supabase_client()
    logger.info(f"🗑️ Starting background deletion for document: {document_id}")

    try:
        delete_document_chunks(document_id)

        try:
            delete_document_files(user_id, document_id)
            logger.info(f"✅ Removed stored files for document {document_id}")
        except Exception as e:
            logger.warning(f"⚠️ Could not remove stored files for {document_id}: {e}")

        db.table(settings.DOCUMENTS_TABLE).delete().eq("id", document_id).execute()
        logger.info(f"✅ Document {document_id} deleted")

    except Exception as e:
        logger.error(f"❌ Document deletion failed for {document_id}: {e}")
