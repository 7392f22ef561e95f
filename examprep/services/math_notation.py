"""
Math-notation normalizer.

The model wraps math in single `$...$` pairs but routinely loses escapes on
the way through JSON (`\\f` of `\\frac` becomes a form feed, `\\t` of
`\\text` becomes a tab) or drops the backslash altogether. Every delimited
fragment is repaired with the same rules and typeset with matplotlib's
mathtext, so the page and the printed paper always show the same math.
"""

import base64
import html
import io
import logging
import re
from functools import lru_cache
from typing import List, Literal, Optional, Tuple

from matplotlib import mathtext
from matplotlib.font_manager import FontProperties
from PIL import Image
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

_MATH_PATTERN = re.compile(r"(\$[^$]*\$)")

_RENDER_DPI = 200
_CSS_DPI = 96
_FONT = FontProperties(size=12)


class Segment(BaseModel):
    """A run of plain text or the inside of one `$...$` pair."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["text", "math"]
    text: str


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SPLITTING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def split_math(text: str) -> List[Segment]:
    """
    Split text into alternating text/math segments, in order.
    Empty or blank pairs and a trailing unmatched `$` stay literal text;
    every `$` is a boundary, so nesting is not recognised.
    """
    segments: List[Segment] = []
    for part in _MATH_PATTERN.split(text or ""):
        if not part:
            continue
        is_pair = len(part) >= 2 and part[0] == "$" and part[-1] == "$"
        if is_pair and part[1:-1].strip():
            segments.append(Segment(kind="math", text=part[1:-1]))
        elif segments and segments[-1].kind == "text":
            segments[-1] = Segment(kind="text", text=segments[-1].text + part)
        else:
            segments.append(Segment(kind="text", text=part))
    return segments


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REPAIR
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

# JSON decoding turns "\frac" into form feed + "rac", "\text" into tab + "ext" …
_CONTROL_ESCAPES = {"\f": "\\f", "\t": "\\t", "\b": "\\b", "\r": "\\r", "\n": "\\n"}
_CONTROL_BEFORE_LETTER = re.compile(r"([\f\t\b\r\n])(?=[A-Za-z])")
_STRAY_CONTROL = re.compile(r"[\f\t\b\r\n]")

_BARE = r"(?<![\\A-Za-z])"

_REPAIRS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(_BARE + r"f?rac(?=\s*\{)"), r"\\frac"),
    (re.compile(_BARE + r"t?ext(?=\s*\{)"), r"\\text"),
    (re.compile(_BARE + r"sqrt(?=\s*[\{\[])"), r"\\sqrt"),
    (re.compile(r"√\s*(?=\{)"), r"\\sqrt"),
    (re.compile(r"√\s*([A-Za-z0-9.]+)"), r"\\sqrt{\1}"),
    (re.compile(r"√"), r"\\sqrt"),
    (re.compile(r"\s*×\s*"), r" \\times "),
    (re.compile(r"\s*÷\s*"), r" \\div "),
)


def repair_expression(expr: str) -> str:
    """Restore the command sequences the model is known to mangle."""
    repaired = _CONTROL_BEFORE_LETTER.sub(lambda m: _CONTROL_ESCAPES[m.group(1)], expr)
    repaired = _STRAY_CONTROL.sub(" ", repaired)
    for pattern, replacement in _REPAIRS:
        repaired = pattern.sub(replacement, repaired)
    return repaired.strip()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TYPESETTING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@lru_cache(maxsize=1024)
def _typeset(expr: str) -> Optional[Tuple[str, int, int]]:
    """PNG data URL and CSS pixel size for a repaired expression, or None."""
    if not expr:
        return None
    buffer = io.BytesIO()
    try:
        mathtext.math_to_image(f"${expr}$", buffer, prop=_FONT, dpi=_RENDER_DPI, format="png")
    except Exception as e:  # mathtext reports bad input as ValueError, layout bugs as anything
        logger.debug(f"[MATH] mathtext rejected {expr!r}: {e}")
        return None

    png = buffer.getvalue()
    with Image.open(io.BytesIO(png)) as image:
        width, height = image.size
    scale = _CSS_DPI / _RENDER_DPI
    data_url = "data:image/png;base64," + base64.b64encode(png).decode("ascii")
    return data_url, max(1, round(width * scale)), max(1, round(height * scale))


def render_math(expr: str, css_class: str = "math") -> str:
    """
    Typeset one expression (without its `$` markers) to an <img> fragment.
    Never raises: unrenderable input comes back as the escaped raw text.
    """
    repaired = repair_expression(expr)
    typeset = _typeset(repaired)
    if typeset is None:
        return f'<span class="{css_class}-raw">{html.escape(expr)}</span>'
    data_url, width, height = typeset
    return (
        f'<img class="{css_class}" src="{data_url}" alt="{html.escape(repaired)}" '
        f'style="width:{width}px;height:{height}px;vertical-align:middle" />'
    )


def _render(text: str, css_class: str) -> str:
    parts = []
    for segment in split_math(text):
        if segment.kind == "math":
            parts.append(render_math(segment.text, css_class=css_class))
        else:
            parts.append(html.escape(segment.text).replace("\n", "<br />"))
    return "".join(parts)


def to_html(text: str) -> str:
    """Markup for the interactive page."""
    return _render(text, "math")


def to_print_markup(text: str) -> str:
    """Markup for the print layout. Same repair rules as to_html."""
    return _render(text, "pdf-math")
