"""Shared test fixtures for the CTA auto-insertion engine."""

import sys
from pathlib import Path

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.database import get_connection, init_db
from src.common.models import CTARecord, DocumentContext
from src.auto_insertion.manager.repository import CTARepository


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def temp_db(tmp_path) -> str:
    """Path of an initialized temporary SQLite database."""
    db_file = tmp_path / "test_cta.db"
    init_db(str(db_file))
    return str(db_file)


@pytest.fixture
def db_conn(temp_db):
    """Provide an initialized SQLite connection from temp_db."""
    conn = get_connection(temp_db)
    yield conn
    conn.close()


@pytest.fixture
def repository(temp_db) -> CTARepository:
    """CTARepository over the temporary database."""
    return CTARepository(temp_db)


@pytest.fixture
def make_record():
    """Factory for in-memory CTA records."""

    def _make(cta_id: int, **overrides) -> CTARecord:
        data = {
            "id": cta_id,
            "name": f"CTA {cta_id}",
            "content": f"<p>Offer {cta_id}</p>",
        }
        data.update(overrides)
        return CTARecord(**data)

    return _make


@pytest.fixture
def records_lookup():
    """Turn a list of records into a ``lookup(id)`` callable."""

    def _lookup(records: list[CTARecord]):
        by_id = {record.id: record for record in records}
        return by_id.get

    return _lookup


@pytest.fixture
def document() -> DocumentContext:
    """A plain blog post with two taxonomy terms."""
    return DocumentContext(document_id=42, content_type="post", taxonomy_terms=[5, 9])


@pytest.fixture
def sample_article() -> str:
    """Article body with five countable paragraphs and some noise."""
    return (
        "<p>First paragraph.</p>\n"
        "<p>Second paragraph.</p>\n"
        "<script>var x = 1;</script>\n"
        "<p>   </p>\n"
        "<p>Third paragraph.</p>\n"
        "<figure><img src=\"/a.png\"></figure>\n"
        "<p>Fifth paragraph.</p>\n"
    )


@pytest.fixture
def sample_page(sample_article) -> str:
    """Full page wrapping sample_article in a WordPress-style container."""
    return (
        "<!DOCTYPE html><html><head><title>Post</title></head><body>"
        "<main><article><div class=\"entry-content\">"
        f"{sample_article}"
        "</div></article></main></body></html>"
    )
