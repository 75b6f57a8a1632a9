"""
Documents feature: split a PDF into single-page PDFs and rebuild it without
selected pages.
"""

import io

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from studybuddy.core.exceptions import InvalidDocumentError
from studybuddy.features.documents.schemas import PageUnit


def _load(pdf_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        # Page tree is parsed lazily; touch it so bad bytes fail here
        len(reader.pages)
    except (PdfReadError, ValueError, TypeError, KeyError) as e:
        raise InvalidDocumentError(str(e)) from e
    return reader


def _write(writer: PdfWriter) -> bytes:
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def count_pages(pdf_bytes: bytes) -> int:
    return len(_load(pdf_bytes).pages)


def split_pdf_into_pages(pdf_bytes: bytes) -> list[PageUnit]:
    """Split a PDF into standalone single-page PDFs, in page order.

    Raises:
        InvalidDocumentError: If the bytes are not a parseable PDF.
    """
    reader = _load(pdf_bytes)
    pages: list[PageUnit] = []

    for index, page in enumerate(reader.pages):
        writer = PdfWriter()
        writer.add_page(page)
        pages.append(PageUnit(page_number=index, data=_write(writer)))

    return pages


def rebuild_pdf_without_pages(pdf_bytes: bytes, page_indices_to_remove: list[int]) -> bytes:
    """Return a new PDF without the given 0-based pages.

    Out-of-range indices are ignored and duplicates collapse. When nothing
    valid is removed, or every page would be removed, the original bytes come
    back unchanged.
    """
    reader = _load(pdf_bytes)
    page_count = len(reader.pages)

    remove = {i for i in page_indices_to_remove if 0 <= i < page_count}
    if not remove:
        return pdf_bytes

    keep = [i for i in range(page_count) if i not in remove]
    if not keep:
        return pdf_bytes

    writer = PdfWriter()
    for i in keep:
        writer.add_page(reader.pages[i])
    return _write(writer)
