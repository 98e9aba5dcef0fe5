"""Tests for fallback chain construction and the payload codec.

Tests cover:
- Termination on self-reference, cycles and depth limit
- Stops on missing, inactive and untargeted records
- Entry derivation (sanitized content, compiled conditions)
- Payload rendering, embedding and reading
"""

import json

import pytest
from bs4 import BeautifulSoup

from src.common.errors import PayloadError
from src.common.models import DocumentContext
from src.auto_insertion.chain import (
    ChainDescriptor,
    FallbackChainBuilder,
    build_chain,
    embed_payload,
    read_payload,
    render_payload,
)

PAYLOAD_ID = "cta-highlights-auto-insert-data"


@pytest.fixture
def builder() -> FallbackChainBuilder:
    return FallbackChainBuilder(max_depth=10, content_selector=".entry-content")


# === Test: Termination ===


class TestTermination:
    def test_self_reference_gives_single_entry(self, builder, make_record, records_lookup, document):
        lookup = records_lookup([make_record(1, fallback_id=1)])
        chain = builder.build(1, lookup, document)
        assert chain.cta_ids() == [1]

    def test_two_node_cycle(self, builder, make_record, records_lookup, document):
        lookup = records_lookup([
            make_record(1, fallback_id=2),
            make_record(2, fallback_id=1),
        ])
        chain = builder.build(1, lookup, document)
        assert chain.cta_ids() == [1, 2]

    def test_depth_limit(self, make_record, records_lookup, document):
        records = [make_record(i, fallback_id=i + 1) for i in range(1, 30)]
        chain = FallbackChainBuilder(max_depth=5).build(1, records_lookup(records), document)
        assert chain.chain_length == 5
        assert chain.cta_ids() == [1, 2, 3, 4, 5]

    def test_constructor_depth_zero_is_respected(self, make_record, records_lookup, document):
        records = [make_record(1, fallback_id=2), make_record(2)]
        chain = FallbackChainBuilder(max_depth=0).build(1, records_lookup(records), document)
        assert chain.is_empty

    def test_per_call_depth_override(self, builder, make_record, records_lookup, document):
        records = [make_record(i, fallback_id=i + 1) for i in range(1, 5)]
        chain = builder.build(1, records_lookup(records), document, max_depth=2)
        assert chain.chain_length == 2

    def test_long_cycle_terminates_within_depth(self, builder, make_record, records_lookup, document):
        records = [make_record(i, fallback_id=(i % 7) + 1) for i in range(1, 8)]
        chain = builder.build(3, records_lookup(records), document)
        assert chain.chain_length == 7
        assert len(set(chain.cta_ids())) == 7


# === Test: Stop conditions ===


class TestStops:
    def test_missing_start_gives_empty_chain(self, builder, records_lookup, document):
        chain = builder.build(99, records_lookup([]), document)
        assert chain.is_empty

    def test_none_start_gives_empty_chain(self, builder, records_lookup, document):
        assert builder.build(None, records_lookup([]), document).is_empty

    def test_missing_fallback_stops(self, builder, make_record, records_lookup, document):
        lookup = records_lookup([make_record(1, fallback_id=2)])
        assert builder.build(1, lookup, document).cta_ids() == [1]

    def test_inactive_fallback_stops(self, builder, make_record, records_lookup, document):
        lookup = records_lookup([
            make_record(1, fallback_id=2),
            make_record(2, status="inactive", fallback_id=3),
            make_record(3),
        ])
        assert builder.build(1, lookup, document).cta_ids() == [1]

    def test_untargeted_fallback_stops(self, builder, make_record, records_lookup, document):
        lookup = records_lookup([
            make_record(1, fallback_id=2),
            make_record(2, content_type_targets=["page"], fallback_id=3),
            make_record(3),
        ])
        assert builder.build(1, lookup, document).cta_ids() == [1]

    def test_opt_out_gives_empty_chain(self, builder, make_record, records_lookup):
        document = DocumentContext(document_id=7, opt_out=True)
        lookup = records_lookup([make_record(1, fallback_id=2), make_record(2)])
        assert builder.build(1, lookup, document).is_empty


# === Test: Entries ===


class TestEntries:
    def test_entry_fields(self, builder, make_record, records_lookup, document):
        record = make_record(
            1,
            content='<p onclick="steal()">Join</p><script>alert(1)</script>',
            storage_conditions=[{"key": "visits", "operator": ">", "value": "3", "datatype": "numeric"}],
            insertion_direction="reverse",
            insertion_position=2,
            overflow_policy="skip",
        )
        chain = builder.build(1, records_lookup([record]), document)
        entry = chain.get_entry(0)

        assert entry.content == "<p>Join</p>"
        assert entry.has_conditions is True
        assert entry.compiled_condition_expr["op"] == "and"
        assert entry.insertion_direction.value == "reverse"
        assert entry.insertion_position == 2
        assert entry.overflow_policy.value == "skip"

    def test_unconditional_entry(self, builder, make_record, records_lookup, document):
        chain = builder.build(1, records_lookup([make_record(1)]), document)
        entry = chain.entries[0]
        assert entry.has_conditions is False
        assert entry.compiled_condition_expr == {"op": "const", "value": True}

    def test_descriptor_metadata(self, builder, make_record, records_lookup, document):
        chain = builder.build(1, records_lookup([make_record(1)]), document, content_selector="#post")
        assert chain.document_id == 42
        assert chain.content_container_selector == "#post"
        assert chain.get_entry(5) is None

    def test_build_chain_convenience(self, make_record, records_lookup, document):
        chain = build_chain(1, records_lookup([make_record(1, fallback_id=1)]), document)
        assert chain.cta_ids() == [1]


# === Test: Payload ===


class TestPayload:
    def test_empty_chain_renders_nothing(self):
        assert render_payload(ChainDescriptor(document_id=1)) == ""

    def test_render_and_read(self, builder, make_record, records_lookup, document):
        chain = builder.build(
            1,
            records_lookup([make_record(1, content="<p>A & B</p>", fallback_id=2), make_record(2)]),
            document,
        )
        block = render_payload(chain)
        assert block.startswith(f'<script type="application/json" id="{PAYLOAD_ID}">')
        assert "</p>" not in block  # markup inside JSON is escaped

        soup = BeautifulSoup(f"<html><body>{block}</body></html>", "lxml")
        assert read_payload(soup) == chain

    def test_payload_json_has_chain_length(self, builder, make_record, records_lookup, document):
        chain = builder.build(1, records_lookup([make_record(1)]), document)
        soup = BeautifulSoup(render_payload(chain), "html.parser")
        data = json.loads(soup.find("script").string)
        assert data["chain_length"] == 1
        assert data["entries"][0]["cta_id"] == 1

    def test_embed_into_body(self, builder, make_record, records_lookup, document):
        chain = builder.build(1, records_lookup([make_record(1)]), document)
        page = "<html><body><main><p>Hi</p></main></body></html>"
        result = embed_payload(page, render_payload(chain))

        soup = BeautifulSoup(result, "lxml")
        assert soup.body.contents[-1]["id"] == PAYLOAD_ID

    def test_embed_into_fragment(self):
        block = '<script type="application/json" id="x">{}</script>'
        assert embed_payload("<p>Hi</p>\n", block) == "<p>Hi</p>\n" + block

    def test_embed_nothing(self):
        assert embed_payload("<p>Hi</p>", "") == "<p>Hi</p>"

    def test_read_missing_block(self):
        soup = BeautifulSoup("<html><body></body></html>", "lxml")
        with pytest.raises(PayloadError):
            read_payload(soup)

    def test_read_corrupt_block(self):
        html = f'<html><body><script type="application/json" id="{PAYLOAD_ID}">{{not json</script></body></html>'
        with pytest.raises(PayloadError):
            read_payload(BeautifulSoup(html, "lxml"))
