"""Unit tests for get_transcript params generation."""

import base64

import pytest

from youtube_summarizer.core.transcript_params import (
    TRANSCRIPT_PANEL_ID,
    build_params,
    encode_message,
    find_page_params,
    generate_params_variants,
)

from mocks.youtube_payloads import VIDEO_ID, initial_data


class TestEncodeMessage:
    """The tiny protobuf writer."""

    @pytest.mark.parametrize("fields,expected", [
        ([(1, 150)], b"\x08\x96\x01"),
        ([(2, "testing")], b"\x12\x07testing"),
        ([(3, [(1, 1)])], b"\x1a\x02\x08\x01"),
        ([(1, True)], b"\x08\x01"),
    ])
    def test_wire_format(self, fields, expected):
        assert encode_message(fields) == expected


class TestBuildParams:

    def test_params_are_base64_and_name_the_video(self):
        decoded = base64.b64decode(build_params(VIDEO_ID, "en"))

        assert VIDEO_ID.encode() in decoded
        assert TRANSCRIPT_PANEL_ID.encode() in decoded

    def test_panel_optional(self):
        decoded = base64.b64decode(build_params(VIDEO_ID, include_panel=False))
        assert TRANSCRIPT_PANEL_ID.encode() not in decoded


class TestParamsVariants:
    """Ordering, bounds and de-duplication of variants."""

    def test_page_params_first(self):
        variants = generate_params_variants(VIDEO_ID, "en", page_params="PAGEPARAMS")

        assert variants[0] == "PAGEPARAMS"
        assert len(variants) == 5
        assert len(set(variants)) == len(variants)

    def test_without_page_params(self):
        variants = generate_params_variants(VIDEO_ID, "en")

        assert len(variants) == 4
        assert "PAGEPARAMS" not in variants

    def test_limit(self):
        assert len(generate_params_variants(VIDEO_ID, "en", page_params="P", limit=2)) == 2
        assert generate_params_variants(VIDEO_ID, "en", limit=0) == []

    def test_without_language_variants_collapse(self):
        # With no language the language-specific and language-free variants coincide
        variants = generate_params_variants(VIDEO_ID, None)
        assert len(variants) == len(set(variants)) == 3

    def test_deterministic(self):
        assert generate_params_variants(VIDEO_ID, "de") == generate_params_variants(VIDEO_ID, "de")


class TestFindPageParams:

    def test_from_initial_data(self):
        assert find_page_params(initial_data=initial_data(transcript_params="FROMDATA")) == "FROMDATA"

    def test_from_html(self):
        html = '..."getTranscriptEndpoint":{"params":"FROMHTML"}...'
        assert find_page_params(html=html) == "FROMHTML"

    def test_missing(self):
        assert find_page_params("<html></html>", initial_data()) is None
