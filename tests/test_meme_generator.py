"""
Tests for Meme Generator

Tests cover the lenient parsers for both generation paths and the
prompts sent to the model.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import ImageCatalogEntry, StyleGuide
from services.meme_generator import (
    MemeTextGenerator, build_manifest, parse_image_response, parse_text_only_response, split_blocks
)


def catalog_entries(*indices):
    return [
        ImageCatalogEntry(index=i, url=f"https://img.example/{i}.png", description=f"desc {i}")
        for i in indices
    ]


class TestTextOnlyParsing:
    """Tests for parse_text_only_response."""

    def test_number_markers_removed(self):
        raw = "1. First joke\n---\n[2]. Second joke\n---\n  3.   Third joke  \n---"

        items = parse_text_only_response(raw)

        assert [i.text for i in items] == ["First joke", "Second joke", "Third joke"]
        assert all(i.image_url is None for i in items)

    def test_trailing_whitespace_block_discarded(self):
        items = parse_text_only_response("1. foo\n---\n2. bar\n---\n   \n")

        assert [i.text for i in items] == ["foo", "bar"]

    def test_block_without_marker_kept_whole(self):
        items = parse_text_only_response("just a joke with no number\n---")

        assert [i.text for i in items] == ["just a joke with no number"]

    def test_number_later_in_text_is_not_a_marker(self):
        items = parse_text_only_response("Top 10. reasons to quit\n---")

        assert items[0].text == "Top 10. reasons to quit"

    def test_blank_blocks_dropped(self):
        raw = "1. Only joke\n---\n   \n---\n\n---"

        assert len(parse_text_only_response(raw)) == 1

    def test_multiline_text_kept(self):
        items = parse_text_only_response("1. me: ships on friday\nalso me: 3am pager\n---")

        assert items[0].text == "me: ships on friday\nalso me: 3am pager"

    def test_empty_response(self):
        assert parse_text_only_response("") == []
        assert split_blocks(None) == []


class TestImageParsing:
    """Tests for parse_image_response."""

    def test_labels_resolve_through_manifest(self):
        manifest = build_manifest(catalog_entries(14, 3))
        raw = "Image 2:\nTEXT: about the second\n---\nImage 1:\nTEXT: about the first\n---"

        items = parse_image_response(raw, manifest)

        assert [(i.text, i.image_url) for i in items] == [
            ("about the second", "https://img.example/3.png"),
            ("about the first", "https://img.example/14.png"),
        ]
        assert items[0].image_suggestion == "Image 2"

    def test_label_is_position_not_catalog_number(self):
        """'Image 14' names no manifest position, so the ordinal fallback applies."""
        manifest = build_manifest(catalog_entries(14))

        items = parse_image_response("Image 14:\nTEXT: hi\n---", manifest)

        assert items[0].image_url == "https://img.example/14.png"
        assert items[0].image_suggestion == "Image 1"

    def test_unlabelled_blocks_fall_back_to_ordinal(self):
        manifest = build_manifest(catalog_entries(5, 6, 7))
        raw = "TEXT: one\n---\nTEXT: two\n---\nTEXT: three\n---"

        items = parse_image_response(raw, manifest)

        assert [i.image_url for i in items] == [m.url for m in manifest]

    def test_missing_text_marker_strips_label(self):
        manifest = build_manifest(catalog_entries(1, 2))

        items = parse_image_response("Image 2: when prod is down\n---", manifest)

        assert items[0].text == "when prod is down"
        assert items[0].image_url == manifest[1].url

    def test_block_without_resolvable_image_dropped(self):
        manifest = build_manifest(catalog_entries(1))
        raw = "TEXT: fine\n---\nTEXT: no image left for me\n---"

        items = parse_image_response(raw, manifest)

        assert [i.text for i in items] == ["fine"]

    def test_block_with_empty_text_dropped(self):
        manifest = build_manifest(catalog_entries(1, 2))

        items = parse_image_response("Image 1:\nTEXT:   \n---\nImage 2:\nTEXT: kept\n---", manifest)

        assert [i.text for i in items] == ["kept"]

    def test_every_item_has_text_and_image(self):
        manifest = build_manifest(catalog_entries(1, 2))
        raw = "garbage\n---\nImage 9\n---\nImage 2:\nTEXT: ok\n---\n\n---"

        for item in parse_image_response(raw, manifest):
            assert item.text.strip()
            assert item.image_url


class TestPrompts:
    """Tests for prompt construction and model calls."""

    @pytest.mark.asyncio
    async def test_text_only_context_from_guide_and_examples(self, store, mock_model, post_factory,
                                                             style_guide_payload):
        store.style_guides.append(StyleGuide(guide_type="comprehensive", content=style_guide_payload,
                                             meme_count=1, id="g1"))
        for i in range(5):
            store.add(post_factory(text=f"example {i} " + "z" * 200))
        mock_model.generate_text.return_value = "1. a\n---\n2. b\n---"

        items = await MemeTextGenerator(store, mock_model).generate_text_only("AI", "sarcastic", 2)

        assert [i.text for i in items] == ["a", "b"]
        prompt = mock_model.generate_text.call_args[0][0]
        assert "Patterns: Expectation vs reality, Corporate speak\n" in prompt
        assert "Third pattern" not in prompt
        assert prompt.count('- "example') == 3
        assert "z" * 80 not in prompt
        assert "Style: sarcastic - Witty and sharp." in prompt
        assert mock_model.generate_text.call_args.kwargs["tier"] == "standard"

    @pytest.mark.asyncio
    async def test_text_only_survives_store_outage(self, store, mock_model):
        store.unavailable = True
        mock_model.generate_text.return_value = "1. still funny\n---"

        items = await MemeTextGenerator(store, mock_model).generate_text_only("AI", "ironic", 1)

        assert [i.text for i in items] == ["still funny"]

    @pytest.mark.asyncio
    async def test_unknown_style_uses_ironic_hint(self, store, mock_model):
        await MemeTextGenerator(store, mock_model).generate_text_only("AI", "unhinged", 1, "mention GPUs")

        prompt = mock_model.generate_text.call_args[0][0]
        assert "Style: unhinged - Use irony and contrast." in prompt
        assert "Extra: mention GPUs" in prompt

    @pytest.mark.asyncio
    async def test_images_attached_in_manifest_order(self, store, mock_model):
        images = catalog_entries(9, 2, 5)
        mock_model.generate_text.return_value = "Image 1:\nTEXT: a\n---"

        await MemeTextGenerator(store, mock_model).generate_for_images("AI", "absurd", images)

        args, kwargs = mock_model.generate_text.call_args
        assert kwargs["images"] == [e.url for e in images]
        assert "Image 1: desc 9\nImage 2: desc 2\nImage 3: desc 5" in args[0]
        assert "Go over the top." in args[0]
