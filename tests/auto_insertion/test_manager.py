"""Tests for the render-time Auto-Insert Manager."""

import pytest
from bs4 import BeautifulSoup

from src.common.models import DocumentContext
from src.auto_insertion.chain import FallbackChainBuilder, read_payload
from src.auto_insertion.manager import AutoInsertManager


@pytest.fixture
def manager(repository) -> AutoInsertManager:
    return AutoInsertManager(repository, builder=FallbackChainBuilder(max_depth=10))


class TestFindMatchingCta:
    def test_first_primary_in_id_order(self, manager, repository, document):
        repository.insert({"name": "fallback", "role": "fallback-only"})
        first = repository.insert({"name": "first"})
        repository.insert({"name": "second"})
        assert manager.find_matching_cta(document).id == first

    def test_skips_inactive_and_untargeted(self, manager, repository, document):
        repository.insert({"status": "inactive"})
        repository.insert({"content_type_targets": ["page"]})
        match = repository.insert({"taxonomy_targets": [9]})
        assert manager.find_matching_cta(document).id == match

    def test_follows_fallback_of_untargeted_primary(self, manager, repository, document):
        backup = repository.insert({"name": "backup", "role": "fallback-only"})
        repository.insert({"name": "page-only", "content_type_targets": ["page"], "fallback_id": backup})
        assert manager.find_matching_cta(document).id == backup

    def test_cyclic_fallbacks_terminate(self, manager, repository, document):
        a = repository.insert({"content_type_targets": ["page"]})
        b = repository.insert({"content_type_targets": ["page"], "role": "fallback-only", "fallback_id": a})
        repository.update(a, {"fallback_id": b})
        assert manager.find_matching_cta(document) is None

    def test_opt_out(self, manager, repository):
        repository.insert({})
        assert manager.find_matching_cta(DocumentContext(document_id=1, opt_out=True)) is None


class TestChainAndPayload:
    def test_build_chain(self, manager, repository, document):
        second = repository.insert({"name": "second", "role": "fallback-only"})
        first = repository.insert({"name": "first", "fallback_id": second})
        chain = manager.build_chain(document, content_selector=".post-content")

        assert chain.cta_ids() == [first, second]
        assert chain.content_container_selector == ".post-content"

    def test_no_cta_renders_nothing(self, manager, document):
        assert manager.render_payload(document) == ""
        page = "<html><body><p>Hi</p></body></html>"
        assert manager.embed_payload(page, document) == page

    def test_embed_payload(self, manager, repository, document):
        cta_id = repository.insert({"name": "only"})
        page = manager.embed_payload("<html><body><p>Hi</p></body></html>", document)
        chain = read_payload(BeautifulSoup(page, "lxml"))
        assert chain.cta_ids() == [cta_id]
        assert chain.document_id == 42

    def test_requires_highlight_assets(self, manager, repository, document):
        assert manager.requires_highlight_assets(document) is False
        repository.insert({"content": "[cta_highlights id=\"3\"]"})
        assert manager.requires_highlight_assets(document) is True
