"""
Tests for style guideline lookup and prompt construction.
"""

import pytest

from picoart.services.prompt_builder import (
    BASE_NEGATIVE_PROMPT,
    build_artist_prompt,
    cleanup_prompt,
    convert_to_sdxl,
    get_control_strength,
)
from picoart.services.styles import (
    ARTISTS_BY_STYLE,
    GUIDELINES,
    StyleRequest,
    StyleTag,
    candidate_artists,
    get_style_guidelines,
    resolve_style_tag,
)


class TestStyleLookup:
    def test_every_tag_has_guidelines_and_artists(self):
        for tag in StyleTag:
            assert GUIDELINES[tag]()
            assert ARTISTS_BY_STYLE[tag]

    @pytest.mark.parametrize(
        "style, expected",
        [
            (StyleRequest(era="Baroque"), StyleTag.BAROQUE),
            (StyleRequest(movement="post-impressionism"), StyleTag.POST_IMPRESSIONISM),
            (StyleRequest(era="japanese", movement="baroque"), StyleTag.JAPANESE),
            (StyleRequest(name="Van Gogh"), None),
            (StyleRequest(era="cubism"), None),
            (None, None),
        ],
    )
    def test_resolve_style_tag(self, style, expected):
        assert resolve_style_tag(style) is expected

    def test_shared_guideline_for_neoclassical_group(self):
        romantic = get_style_guidelines(StyleRequest(era="romantic"))
        assert romantic == get_style_guidelines(StyleRequest(era="realist"))
        assert romantic == get_style_guidelines(StyleRequest(era="neoclassical"))

    def test_unknown_style_yields_empty_guideline(self):
        """Unknown tags return an empty guideline instead of failing."""
        assert get_style_guidelines(StyleRequest(era="vaporwave")) == ""
        assert get_style_guidelines(None) == ""

    def test_candidate_artists_copy(self):
        artists = candidate_artists(StyleTag.BAROQUE)
        artists.append("Someone")
        assert "Someone" not in ARTISTS_BY_STYLE[StyleTag.BAROQUE]
        assert candidate_artists(None) == []


class TestPromptBuilder:
    def test_build_artist_prompt(self):
        prompt = build_artist_prompt("portrait of a woman", "Caravaggio", StyleRequest(era="baroque"))
        assert prompt == "portrait of a woman, in the style of Caravaggio, Baroque oil painting"

    def test_build_artist_prompt_uses_style_name_for_unknown_tag(self):
        prompt = build_artist_prompt("a dog", None, StyleRequest(name="Pop Art"))
        assert prompt == "a dog, Pop Art"

    def test_cleanup_prompt(self):
        messy = "  a   cat ,, sitting,  A CAT , on a mat.  "
        assert cleanup_prompt(messy) == "a cat, sitting, on a mat"

    @pytest.mark.parametrize(
        "prompt, expected",
        [
            ("a street, Impressionist painting", 0.35),
            ("portrait of a man", 0.65),
            ("a bowl of fruit", 0.5),
            ("expressionist portrait", 0.35),
        ],
    )
    def test_control_strength(self, prompt, expected):
        assert get_control_strength(prompt) == expected

    def test_convert_to_sdxl_adds_artist_and_negatives(self):
        result = convert_to_sdxl("a harbour at dawn", StyleRequest(era="impressionism"), "Claude Monet")
        assert result.prompt.startswith("a harbour at dawn, by Claude Monet")
        assert "masterpiece" in result.prompt
        assert result.negative_prompt.startswith(BASE_NEGATIVE_PROMPT)
        assert "sharp outlines" in result.negative_prompt

    def test_convert_to_sdxl_truncates_long_prompts(self):
        long_prompt = " ".join(f"word{i}" for i in range(200))
        result = convert_to_sdxl(long_prompt, None, None)
        assert "word59" in result.prompt
        assert "word60" not in result.prompt
        assert result.negative_prompt == BASE_NEGATIVE_PROMPT
