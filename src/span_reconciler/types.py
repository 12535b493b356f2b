"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FlagKind(str, Enum):
    """Detection categories the upstream model may report."""
    REPETITIVE_STRUCTURE = "repetitive_structure"
    TRANSITION_OVERUSE = "transition_overuse"
    HEDGING_LANGUAGE = "hedging_language"
    GENERIC_PHRASING = "generic_phrasing"
    PERFECT_GRAMMAR = "perfect_grammar"
    ROBOTIC_FLOW = "robotic_flow"
    BUZZWORD_HEAVY = "buzzword_heavy"
    LACK_PERSONALITY = "lack_personality"
    ENCYCLOPEDIC_TONE = "encyclopedic_tone"
    UNIFORM_SENTENCES = "uniform_sentences"
    PREDICTABLE_VOCABULARY = "predictable_vocabulary"
    FORMAL_RIGIDITY = "formal_rigidity"


class Severity(str, Enum):
    """Ordered flag severity: low < medium < high < critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def coerce(cls, value: Any) -> "Severity":
        """Parse a severity string; anything unrecognised is LOW."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.LOW


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class MatchStrategy(str, Enum):
    """Cascade tier that produced a resolved span."""
    EXACT = "exact"
    CASE_INSENSITIVE = "case-insensitive"
    FUZZY_WORD_OVERLAP = "fuzzy-word-overlap"
    LONGEST_COMMON_SUBSTRING = "longest-common-substring"
    FALLBACK = "fallback"


# Sentinel the model uses for findings that span the whole document
ENTIRE_TEXT = "Entire text"


@dataclass(frozen=True, slots=True)
class FlagCandidate:
    """One detection result as reported by the upstream model.

    The claimed indices are untrusted and never used for locating the span.
    """
    kind: FlagKind
    severity: Severity
    claimed_text: str
    claimed_start_index: int = 0
    claimed_end_index: int = 0
    confidence: int = 0          # 0–100
    explanation: str = ""
    suggestion: str = ""


@dataclass(frozen=True, slots=True)
class ResolvedFlag:
    """A flag whose span has been located in the canonical text."""
    candidate: FlagCandidate
    resolved_start_index: int
    resolved_end_index: int
    resolved_text: str
    match_strategy: MatchStrategy
    adjusted_confidence: int
    document_wide: bool = False  # resolved to the whole text by the pre-filter

    # Pass-through accessors so callers can treat this like the candidate
    @property
    def kind(self) -> FlagKind:
        return self.candidate.kind

    @property
    def severity(self) -> Severity:
        return self.candidate.severity

    @property
    def claimed_text(self) -> str:
        return self.candidate.claimed_text

    @property
    def confidence(self) -> int:
        return self.candidate.confidence

    @property
    def explanation(self) -> str:
        return self.candidate.explanation

    @property
    def suggestion(self) -> str:
        return self.candidate.suggestion

    def to_dict(self) -> dict[str, Any]:
        """Wire shape consumed by the web client (camelCase keys)."""
        return {
            "type": self.kind.value,
            "severity": self.severity.value,
            "description": self.explanation,
            "text": self.resolved_text,
            "startIndex": self.resolved_start_index,
            "endIndex": self.resolved_end_index,
            "confidence": self.adjusted_confidence,
            "suggestion": self.suggestion,
            "claimedText": self.claimed_text,
            "originalConfidence": self.confidence,
            "matchStrategy": self.match_strategy.value,
            "documentWide": self.document_wide,
        }


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    """Best prefix match found by the longest-common-substring search."""
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass(slots=True)
class ReconciledText:
    """Result of reconciling flags against a piece of text."""
    canonical: str                                  # offsets address this
    flags: list[ResolvedFlag] = field(default_factory=list)
