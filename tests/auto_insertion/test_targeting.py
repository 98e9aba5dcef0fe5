"""Tests for the targeting matcher."""

import pytest

from src.common.models import DocumentContext, TaxonomyMode
from src.auto_insertion.targeting import TargetingMatcher


@pytest.fixture
def matcher() -> TargetingMatcher:
    return TargetingMatcher()


class TestOptOut:
    def test_opt_out_rejects_everything(self, matcher, make_record):
        document = DocumentContext(document_id=1, opt_out=True)
        assert matcher.matches(make_record(1), document) is False

    def test_untargeted_cta_matches(self, matcher, make_record, document):
        assert matcher.matches(make_record(1), document) is True


class TestContentType:
    def test_content_type_must_be_listed(self, matcher, make_record, document):
        assert matcher.matches(make_record(1, content_type_targets=["post"]), document)
        assert not matcher.matches(make_record(2, content_type_targets=["page"]), document)


class TestTaxonomy:
    def test_include_requires_intersection(self, matcher, make_record, document):
        assert matcher.matches(make_record(1, taxonomy_targets=[9, 12]), document)
        assert not matcher.matches(make_record(2, taxonomy_targets=[12]), document)

    def test_exclude_requires_no_intersection(self, matcher, make_record, document):
        excluded = make_record(1, taxonomy_mode=TaxonomyMode.EXCLUDE, taxonomy_targets=[5])
        allowed = make_record(2, taxonomy_mode=TaxonomyMode.EXCLUDE, taxonomy_targets=[7])
        assert not matcher.matches(excluded, document)
        assert matcher.matches(allowed, document)

    def test_document_without_terms(self, matcher, make_record):
        document = DocumentContext(document_id=3, taxonomy_terms=[])
        include = make_record(1, taxonomy_targets=[5])
        exclude = make_record(2, taxonomy_mode="exclude", taxonomy_targets=[5])
        assert not matcher.matches(include, document)
        assert matcher.matches(exclude, document)

    def test_empty_targets_in_exclude_mode(self, matcher, make_record, document):
        assert matcher.matches(make_record(1, taxonomy_mode="exclude"), document)
