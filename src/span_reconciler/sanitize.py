"""Text sanitizer — produces the canonical text every offset refers to.

Markup is stripped, the five named entities are decoded, leftover
attribute fragments are removed and whitespace is collapsed.  The steps
run in a fixed order and repeat until the text stops changing, so the
result never contains a tag or a decodable entity and sanitizing twice is
the same as sanitizing once.  Nested escapes are therefore decoded all
the way: ``&amp;lt;`` ends up as ``<`` rather than the ``&lt;`` a single
pass would leave.

Every step is linear in the length of the text, since the input is
untrusted and unbounded.
"""

from __future__ import annotations
import re
from typing import Any

_TAG = re.compile(r"<[^>]*>")

# Opening of a residual attribute; the closing quote is found separately.
# (?<!\s) makes a whitespace run match only from its first character.
_DATA_ATTR_OPEN = re.compile(r'(?<!\s)\s*data-[\w.:-]{0,128}="')
_CLASS_ATTR_OPEN = re.compile(r'(?<!\s)\s*class="')

# Each entity step: (compiled_regex, replacement), &amp; last.
# A chain like &amp;amp;amp; collapses in one step instead of one pass per level.
_ENTITIES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"&quot;"), '"'),
    (re.compile(r"&apos;"), "'"),
    (re.compile(r"&lt;"), "<"),
    (re.compile(r"&gt;"), ">"),
    (re.compile(r"&(?:amp;)+"), "&"),
]

_WHITESPACE = re.compile(r"\s+")


def _strip_tags(text: str) -> str:
    # A '<' after the last '>' can never close; leave that tail unscanned
    last = text.rfind(">")
    if last == -1:
        return text
    return _TAG.sub("", text[:last + 1]) + text[last + 1:]


def _strip_attribute(text: str, opener: re.Pattern) -> str:
    parts: list[str] = []
    pos = 0
    while (m := opener.search(text, pos)) is not None:
        close = text.find('"', m.end())
        if close == -1:
            break
        parts.append(text[pos:m.start()])
        pos = close + 1
    parts.append(text[pos:])
    return "".join(parts)


def _sanitize_once(text: str) -> str:
    # Tags go first so attribute values inside them are discarded whole
    text = _strip_tags(text)
    for pattern, replacement in _ENTITIES:
        text = pattern.sub(replacement, text)
    text = _strip_attribute(text, _DATA_ATTR_OPEN)
    text = _strip_attribute(text, _CLASS_ATTR_OPEN)
    return _WHITESPACE.sub(" ", text).strip()


def sanitize(raw: Any) -> str:
    """Return the canonical form of *raw*.  Non-string input yields ``""``."""
    if not isinstance(raw, str) or not raw:
        return ""
    text = _sanitize_once(raw)
    while True:
        again = _sanitize_once(text)
        if again == text:
            return text
        text = again


def fold_case(text: str) -> str:
    """Lowercase *text* without changing its length.

    Characters whose lowercase form is longer than one code point (e.g.
    ``"İ"``) are kept as-is so indices into the folded copy stay valid
    for the original.
    """
    return "".join(ch if len(low := ch.lower()) != 1 else low for ch in text)
