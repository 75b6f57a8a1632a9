"""
Documents feature: bounded-concurrency page extraction with retries.

Pages are extracted up to PAGE_CONCURRENCY_LIMIT at a time. Each page gets
PAGE_MAX_RETRIES retries with exponential backoff (2s, 4s, 8s by default);
a page that still fails is reported as a failed PageResult instead of
aborting the document.
"""

import asyncio
import logging
from datetime import datetime, timezone

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from studybuddy.config import get_settings
from studybuddy.features.documents.extractor import extract_page_content
from studybuddy.features.documents.schemas import PageResult, PageUnit

logger = logging.getLogger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    page: PageUnit = retry_state.args[0]
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Page {page.page_number} attempt {retry_state.attempt_number} failed "
        f"({retry_state.outcome.exception()}), retrying in {delay:.1f}s..."
    )


def _append_debug_log(path: str, page_number: int, content: str) -> None:
    bar = "=" * 60
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"\n{bar}\nPAGE {page_number + 1}\n{bar}\n{content}\n")


async def _extract_once(page: PageUnit, api_key: str) -> str:
    return await extract_page_content(page.data, api_key)


def page_retry_wait() -> wait_exponential:
    """Delay before retry n (1-based) is base * 2^(n-1)."""
    return wait_exponential(multiplier=get_settings().PAGE_RETRY_BASE_DELAY)


async def process_page_with_retry(page: PageUnit, api_key: str) -> PageResult:
    """Extract one page, retrying with backoff. Never raises for extraction errors."""
    settings = get_settings()
    attempts = settings.PAGE_MAX_RETRIES + 1

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=page_retry_wait(),
        before_sleep=_log_retry,
        reraise=True,
    )

    try:
        content = await retrying(_extract_once, page, api_key)
    except Exception as e:
        logger.error(f"Page {page.page_number} failed after {attempts} attempts: {e}")
        return PageResult.failed(page.page_number, str(e))

    if settings.DOCUMENT_DEBUG_LOG:
        _append_debug_log(settings.DOCUMENT_DEBUG_LOG, page.page_number, content)

    # Courtesy delay between provider calls
    await asyncio.sleep(settings.PAGE_REQUEST_DELAY)
    return PageResult.ok(page.page_number, content)


async def process_pages(pages: list[PageUnit], api_key: str) -> list[PageResult]:
    """Extract all pages concurrently (capped). Results keep input order."""
    if not pages:
        return []

    settings = get_settings()

    if settings.DOCUMENT_DEBUG_LOG:
        with open(settings.DOCUMENT_DEBUG_LOG, "w", encoding="utf-8") as f:
            f.write(
                f"LLM Extraction Log - {datetime.now(timezone.utc).isoformat()}\n"
                f"Total pages: {len(pages)}\n"
            )

    semaphore = asyncio.Semaphore(settings.PAGE_CONCURRENCY_LIMIT)

    async def _bounded(page: PageUnit) -> PageResult:
        async with semaphore:
            return await process_page_with_retry(page, api_key)

    results = await asyncio.gather(*(_bounded(page) for page in pages))
    return list(results)
