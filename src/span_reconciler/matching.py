"""Matching cascade — locate a quoted fragment inside canonical text.

Tiers, tried in order until one succeeds:

    1. exact substring
    2. case-insensitive substring
    3. distinctive-word overlap inside a window around the first word
    4. longest prefix of the claim found anywhere in the text
    5. fallback to the start of the text

All functions take already-sanitized strings and return offsets into
*canonical*.  None of them raise.
"""

from __future__ import annotations
from dataclasses import dataclass

from .sanitize import fold_case
from .types import ENTIRE_TEXT, MatchCandidate, MatchStrategy

WINDOW_RADIUS = 50            # chars either side of the first distinctive word
WORD_OVERLAP_THRESHOLD = 0.6  # fraction of distinctive words required
MIN_WORD_LENGTH = 3           # shorter words are too common to anchor on
MAX_PREFIX_MIN_LENGTH = 20
CONFIDENCE_PENALTY = 20
CONFIDENCE_FLOOR = 50
DOCUMENT_WIDE_RATIO = 0.8

_DOCUMENT_WIDE_MARKERS = ("throughout", "pattern")


@dataclass(frozen=True, slots=True)
class Location:
    """A located span and the tier that found it."""
    start: int
    end: int
    text: str
    strategy: MatchStrategy


def is_document_wide(claim: str, canonical: str) -> bool:
    """True if *claim* describes the whole document rather than a span."""
    if claim == ENTIRE_TEXT or "..." in claim:
        return True
    lowered = claim.lower()
    if any(marker in lowered for marker in _DOCUMENT_WIDE_MARKERS):
        return True
    return len(claim) > DOCUMENT_WIDE_RATIO * len(canonical)


def find_exact(canonical: str, claim: str) -> Location | None:
    start = canonical.find(claim)
    if start == -1:
        return None
    end = start + len(claim)
    return Location(start, end, canonical[start:end], MatchStrategy.EXACT)


def find_case_insensitive(canonical: str, claim: str) -> Location | None:
    start = fold_case(canonical).find(fold_case(claim))
    if start == -1:
        return None
    end = start + len(claim)
    return Location(start, end, canonical[start:end], MatchStrategy.CASE_INSENSITIVE)


def find_word_overlap(canonical: str, claim: str) -> Location | None:
    """Anchor on the first distinctive word, then check its neighbourhood.

    The window spans WINDOW_RADIUS characters before the anchor up to
    ``len(claim) + WINDOW_RADIUS`` after it.  Accepted when at least 60% of
    the distinctive words occur somewhere inside the window; the span is
    the window start clamped to the claim's length.
    """
    words = [fold_case(w) for w in claim.split() if len(w) >= MIN_WORD_LENGTH]
    if not words:
        return None

    folded = fold_case(canonical)
    anchor = folded.find(words[0])
    if anchor == -1:
        return None

    window_start = max(0, anchor - WINDOW_RADIUS)
    window_end = min(len(canonical), anchor + len(claim) + WINDOW_RADIUS)
    window = folded[window_start:window_end]

    found = sum(1 for w in words if w in window)
    if found / len(words) < WORD_OVERLAP_THRESHOLD:
        return None

    end = min(window_end, window_start + len(claim))
    return Location(window_start, end, canonical[window_start:end], MatchStrategy.FUZZY_WORD_OVERLAP)


def prefix_min_length(claim: str) -> int:
    """Shortest prefix match worth reporting for *claim*."""
    return min(MAX_PREFIX_MIN_LENGTH, len(claim) * 3 // 10)  # floor(0.3 * len)


def longest_prefix_match(canonical: str, claim: str) -> MatchCandidate | None:
    """Longest substring of *canonical* equal (ignoring case) to a prefix of *claim*.

    Scans start offsets in ascending order and only replaces the best match
    on a strictly longer one, so ties go to the earliest start.  For each
    start the matching prefix lengths are contiguous from zero, so the
    common-prefix length is the largest length that would match.
    """
    folded = fold_case(canonical)
    target = fold_case(claim)
    n, m = len(folded), len(target)
    min_len = prefix_min_length(claim)

    best: MatchCandidate | None = None
    for i in range(n):
        limit = min(m, n - i)
        if limit < max(min_len, 1) or (best is not None and limit <= best.length):
            continue
        j = 0
        while j < limit and folded[i + j] == target[j]:
            j += 1
        if j >= min_len and j > 0 and (best is None or j > best.length):
            best = MatchCandidate(start=i, length=j)
            if j == m:
                break
    return best


def find_longest_prefix(canonical: str, claim: str) -> Location | None:
    match = longest_prefix_match(canonical, claim)
    if match is None:
        return None
    return Location(
        match.start, match.end, canonical[match.start:match.end],
        MatchStrategy.LONGEST_COMMON_SUBSTRING,
    )


_CASCADE = (find_exact, find_case_insensitive, find_word_overlap, find_longest_prefix)


def locate(canonical: str, claim: str) -> Location:
    """Run the cascade; falls back to the first ``len(claim)`` chars."""
    for finder in _CASCADE:
        location = finder(canonical, claim)
        if location is not None:
            return location
    end = min(len(claim), len(canonical))
    return Location(0, end, canonical[:end], MatchStrategy.FALLBACK)


def adjust_confidence(confidence: int, resolved_text: str, claim: str) -> int:
    """Penalise imperfect matches, never below the floor or above the input.

    The comparison is case-sensitive, so case-insensitive matches are
    always penalised.
    """
    if resolved_text == claim:
        return confidence
    return min(confidence, max(CONFIDENCE_FLOOR, confidence - CONFIDENCE_PENALTY))
