"""
Tests for the math-notation normalizer.

- Splitting: ordering, unmatched and blank delimiters
- Repair: control-character escapes, missing backslashes, Unicode symbols
- Rendering: typeset images, raw fallback, HTML escaping
"""

import pytest

from examprep.services.math_notation import (
    Segment,
    render_math,
    repair_expression,
    split_math,
    to_html,
    to_print_markup,
)


def _rebuild(segments):
    return "".join(s.text if s.kind == "text" else f"${s.text}$" for s in segments)


class TestSplitMath:
    def test_alternates_text_and_math_in_order(self):
        assert split_math("Solve $x+1$ now") == [
            Segment(kind="text", text="Solve "),
            Segment(kind="math", text="x+1"),
            Segment(kind="text", text=" now"),
        ]

    def test_unmatched_dollar_stays_text(self):
        assert split_math("It costs $5 today") == [Segment(kind="text", text="It costs $5 today")]

    def test_empty_and_blank_pairs_stay_text(self):
        segments = split_math("a $$ b $ $ c")
        assert [s.kind for s in segments] == ["text"]
        assert segments[0].text == "a $$ b $ $ c"

    @pytest.mark.parametrize(
        "text",
        ["", "plain", "$x$", "a $x$ b $y$ c", "trailing $", "x $ $ y $z$ and $5"],
    )
    def test_segments_cover_the_input(self, text):
        assert _rebuild(split_math(text)) == text

    def test_none_is_treated_as_empty(self):
        assert split_math(None) == []


class TestRepairExpression:
    def test_form_feed_restores_frac(self):
        assert repair_expression("\x0crac{1}{2}") == "\\frac{1}{2}"

    def test_tab_restores_text(self):
        assert repair_expression("5\x09ext{ cm}") == "5\\text{ cm}"

    def test_other_json_escapes_are_restored(self):
        assert repair_expression("\x08eta") == "\\beta"
        assert repair_expression("\x0dho") == "\\rho"
        assert repair_expression("\nabla") == "\\nabla"

    def test_stray_control_characters_become_spaces(self):
        assert repair_expression("x\x0c+\t1") == "x + 1"

    def test_missing_backslash_and_first_letter(self):
        assert repair_expression("rac{1}{2}") == "\\frac{1}{2}"
        assert repair_expression("frac{3}{4}") == "\\frac{3}{4}"
        assert repair_expression("ext{kg}") == "\\text{kg}"
        assert repair_expression("sqrt{9}") == "\\sqrt{9}"

    def test_well_formed_input_is_untouched(self):
        assert repair_expression("\\frac{1}{2} + \\sqrt{x}") == "\\frac{1}{2} + \\sqrt{x}"

    def test_words_containing_command_names_are_untouched(self):
        assert repair_expression("\\text{fraction}") == "\\text{fraction}"

    def test_unicode_symbols(self):
        assert repair_expression("√2") == "\\sqrt{2}"
        assert repair_expression("√{x+1}") == "\\sqrt{x+1}"
        assert repair_expression("3×4") == "3 \\times 4"
        assert repair_expression("8 ÷ 2") == "8 \\div 2"


class TestRendering:
    def test_math_is_typeset_to_an_image(self):
        markup = to_html("Area is $x^2$")
        assert markup.startswith("Area is ")
        assert '<img class="math" src="data:image/png;base64,' in markup

    def test_repaired_and_well_formed_input_render_identically(self):
        assert render_math("rac{1}{2}") == render_math("\\frac{1}{2}")
        assert render_math("√2") == render_math("\\sqrt{2}")

    def test_unrenderable_math_falls_back_to_raw_text(self):
        markup = to_html("Bad $\\undefinedmacro{<x>}$ here")
        assert '<span class="math-raw">\\undefinedmacro{&lt;x&gt;}</span>' in markup
        assert markup.startswith("Bad ")
        assert markup.endswith(" here")

    @pytest.mark.parametrize("text", ["$\\frac{1}{$", "$}{$", "$\\\\\\$", "$$$$$", "\x00$\x0c$"])
    def test_never_raises(self, text):
        assert isinstance(to_html(text), str)

    def test_text_is_escaped_and_newlines_kept(self):
        assert to_html("a < b\nc & d") == "a &lt; b<br />c &amp; d"

    def test_print_markup_uses_print_class(self):
        assert 'class="pdf-math"' in to_print_markup("$y = 2$")
        assert 'class="math"' not in to_print_markup("$y = 2$")
