"""Chain payload codec.

The chain descriptor reaches view time as a JSON data block embedded in the
rendered page:

    <script type="application/json" id="cta-highlights-auto-insert-data">{...}</script>

This block is the only channel between render time and view time.
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup
from pydantic import ValidationError

from src.common.config import settings
from src.common.errors import PayloadError

from ..template_engine import TemplateRenderer
from .models import ChainDescriptor


def render_payload(
    descriptor: ChainDescriptor,
    element_id: Optional[str] = None,
    renderer: Optional[TemplateRenderer] = None,
) -> str:
    """Render the payload block for a chain.

    Returns an empty string for an empty chain: no CTA means no output.
    """
    if descriptor.is_empty:
        return ""
    renderer = renderer or TemplateRenderer()
    return renderer.render_payload(
        descriptor, element_id or settings.auto_insert.payload_element_id
    )


def embed_payload(page_html: str, payload_html: str) -> str:
    """Place the payload block at the end of ``<body>``.

    Fragments without a body get the block appended.
    """
    if not payload_html:
        return page_html

    if "<body" not in page_html.lower():
        return page_html.rstrip("\n") + "\n" + payload_html

    soup = BeautifulSoup(page_html, "lxml")
    block = BeautifulSoup(payload_html, "html.parser").find("script")
    soup.body.append(block)
    return str(soup)


def read_payload(
    document: BeautifulSoup,
    element_id: Optional[str] = None,
) -> ChainDescriptor:
    """Load the chain descriptor embedded in a parsed page.

    Raises:
        PayloadError: If the block is missing, empty or not a valid descriptor.
    """
    element_id = element_id or settings.auto_insert.payload_element_id
    block = document.find(id=element_id)
    if block is None:
        raise PayloadError(f"No payload block #{element_id}")

    text = block.string or block.get_text()
    if not text or not text.strip():
        raise PayloadError(f"Payload block #{element_id} is empty")

    try:
        return ChainDescriptor.model_validate_json(text)
    except ValidationError as e:
        raise PayloadError(f"Invalid chain payload: {e}") from e
