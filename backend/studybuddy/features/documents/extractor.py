"""
Documents feature: multimodal page extraction.

Each single-page PDF is sent as a base64 file block alongside a fixed prompt
to a PDF-capable chat model on OpenRouter. One call per page; retries live in
page_processor.
"""

import base64

from langchain_core.messages import HumanMessage

from studybuddy.config import get_settings
from studybuddy.core.exceptions import ExtractionError
from studybuddy.core.llm_provider import create_llm

EXTRACTION_PROMPT = """Extract all text content from this PDF page.

Include:
- All visible text (headings, paragraphs, bullet points, captions)
- Text from diagrams, charts, or figures (describe what they show)
- Any code snippets or formulas

Format the output as clean, readable text. Preserve the logical structure and hierarchy of the content."""


def build_extraction_message(page_bytes: bytes) -> HumanMessage:
    encoded = base64.b64encode(page_bytes).decode()
    return HumanMessage(content=[
        {"type": "text", "text": EXTRACTION_PROMPT},
        {
            "type": "file",
            "file": {
                "filename": "page.pdf",
                "file_data": f"data:application/pdf;base64,{encoded}",
            },
        },
    ])


async def extract_page_content(page_bytes: bytes, api_key: str) -> str:
    """Extract the text of one single-page PDF.

    Raises:
        ExtractionError: If the model reply is not a non-empty string.
        Any transport error from the model client propagates unchanged.
    """
    settings = get_settings()
    llm = create_llm(api_key, settings.EXTRACTION_MODEL)

    response = await llm.ainvoke([build_extraction_message(page_bytes)])

    content = response.content
    if not isinstance(content, str) or not content.strip():
        raise ExtractionError("Extraction model returned an empty or non-text reply")
    return content
