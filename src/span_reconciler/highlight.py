"""Wrap resolved flags in ``<span>`` markup for display.

Spans are chosen right to left so overlapping flags resolve predictably,
then the output is assembled from HTML-escaped slices of the canonical
text.  Running the output back through
:func:`span_reconciler.sanitize.sanitize` yields the canonical text again.
"""

from __future__ import annotations
from html import escape

from .types import ResolvedFlag, Severity

_SPAN_FMT = (
    '<span class="ai-flag {css_class}" data-flag-id="flag-{idx}" '
    'data-severity="{severity}" data-confidence="{confidence}" '
    'title="{title}">{text}</span>'
)


def severity_class(severity: Severity) -> str:
    return f"severity-{severity.value}"


def _select(flags: list[ResolvedFlag], length: int) -> list[tuple[int, ResolvedFlag]]:
    """Non-overlapping (index, flag) pairs to wrap, in ascending offset order."""
    indexed = [
        (idx, f) for idx, f in enumerate(flags)
        if not f.document_wide and f.resolved_end_index > f.resolved_start_index
    ]
    chosen: list[tuple[int, ResolvedFlag]] = []
    taken_start = length + 1
    for idx, f in sorted(indexed, key=lambda p: (p[1].resolved_start_index, p[0]), reverse=True):
        if f.resolved_end_index > taken_start:
            continue
        chosen.append((idx, f))
        taken_start = f.resolved_start_index
    chosen.reverse()
    return chosen


def highlight(canonical: str, flags: list[ResolvedFlag]) -> str:
    """Return *canonical*, HTML-escaped, with each located flag wrapped in a span.

    Document-wide flags and empty spans are skipped.  When flags overlap,
    the one starting later wins and the other is left unwrapped.
    """
    parts: list[str] = []
    pos = 0
    for idx, f in _select(flags, len(canonical)):
        start, end = f.resolved_start_index, f.resolved_end_index
        parts.append(escape(canonical[pos:start], quote=False))
        parts.append(_SPAN_FMT.format(
            css_class=severity_class(f.severity),
            severity=f.severity.value,
            idx=idx,
            confidence=f.adjusted_confidence,
            title=escape(f.explanation, quote=True),
            text=escape(canonical[start:end], quote=False),
        ))
        pos = end
    parts.append(escape(canonical[pos:], quote=False))
    return "".join(parts)
