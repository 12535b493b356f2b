"""Detection-response parsing — turn the model's reply into typed values.

The model is asked for a bare JSON object but regularly wraps it in code
fences, quotes or a chatty preamble.  ``parse_analysis`` strips those,
decodes what is left and degrades to a fallback analysis instead of
raising when nothing usable comes back.
"""

from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .types import FlagCandidate, FlagKind, Severity

logger = logging.getLogger(__name__)


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


_METRIC_KEYS = {
    "sentence_variability": "sentenceVariability",
    "vocabulary_diversity": "vocabularyDiversity",
    "natural_flow": "naturalFlow",
    "personality_presence": "personalityPresence",
    "burstiness": "burstiness",
    "perplexity": "perplexity",
}


@dataclass(frozen=True, slots=True)
class DetectionMetrics:
    """Stylometric scores reported by the model, each 0–100."""
    sentence_variability: int = 0
    vocabulary_diversity: int = 0
    natural_flow: int = 0
    personality_presence: int = 0
    burstiness: int = 0
    perplexity: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "DetectionMetrics":
        if not isinstance(data, dict):
            return cls()
        return cls(**{attr: _clamp_score(data.get(key)) for attr, key in _METRIC_KEYS.items()})

    def to_dict(self) -> dict[str, int]:
        return {key: getattr(self, attr) for attr, key in _METRIC_KEYS.items()}


@dataclass(slots=True)
class DetectionAnalysis:
    """Parsed detection result; ``flags`` are not yet reconciled."""
    overall_score: int = 0
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    summary: str = ""
    flags: list[FlagCandidate] = field(default_factory=list)
    metrics: DetectionMetrics = field(default_factory=DetectionMetrics)
    recommendations: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------

_CLEANUP: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^```json\s*", re.IGNORECASE), ""),
    (re.compile(r"\s*```$"), ""),
    (re.compile(r"^```\s*"), ""),
    (re.compile(r"^`+|`+$"), ""),
    (re.compile(r"^[\"']|[\"']$"), ""),
    (re.compile(r"^Here's the analysis:\s*", re.IGNORECASE), ""),
    (re.compile(r"^Here is the analysis:\s*", re.IGNORECASE), ""),
    (re.compile(r"^Analysis result:\s*", re.IGNORECASE), ""),
    (re.compile(r"^The analysis shows:\s*", re.IGNORECASE), ""),
]

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def clean_model_output(raw: str) -> str:
    """Strip fences, quotes and preambles; keep the outermost ``{...}``."""
    result = (raw or "").strip()
    for pattern, replacement in _CLEANUP:
        result = pattern.sub(replacement, result)
    result = result.strip()

    first, last = result.find("{"), result.rfind("}")
    if first != -1 and last != -1 and first < last:
        result = result[first:last + 1]
    return result


# ---------------------------------------------------------------------------
# Fallbacks
# ---------------------------------------------------------------------------

def failed_analysis(summary: str, recommendations: list[str] | None = None) -> DetectionAnalysis:
    """Empty low-confidence analysis carrying an explanation for the user."""
    return DetectionAnalysis(summary=summary, recommendations=list(recommendations or []))


UNPARSEABLE = (
    "Unable to parse AI analysis response. The model may have returned improperly formatted data.",
    [
        "Try analyzing shorter text segments",
        "Ensure text is in a supported language",
        "Contact support if issue persists",
    ],
)

NO_JSON = (
    "No valid JSON analysis found in model response. "
    "The AI model may not have followed output format instructions.",
    [
        "Try again with different text",
        "Ensure text is clear and well-formatted",
        "Contact support if issue persists",
    ],
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_analysis(raw: str) -> DetectionAnalysis:
    """Parse a model reply into a DetectionAnalysis.  Never raises."""
    cleaned = clean_model_output(raw)
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        logger.warning("Model reply is not valid JSON (%s); %d chars", e, len(cleaned))
        match = _JSON_OBJECT.search(cleaned)
        if match is None:
            return failed_analysis(*NO_JSON)
        try:
            data = json.loads(match.group())
        except ValueError as e2:
            logger.warning("Extracted JSON object did not parse either: %s", e2)
            return failed_analysis(*UNPARSEABLE)

    if not isinstance(data, dict):
        logger.warning("Model reply decoded to %s, expected an object", type(data).__name__)
        return failed_analysis(*NO_JSON)
    return analysis_from_dict(data)


def analysis_from_dict(data: dict[str, Any]) -> DetectionAnalysis:
    """Build an analysis from decoded JSON, defaulting missing fields."""
    raw_flags = data.get("flags") or []
    if not isinstance(raw_flags, list):
        logger.warning("Ignoring 'flags' of type %s, expected a list", type(raw_flags).__name__)
        raw_flags = []
    flags = [f for f in (coerce_flag(item) for item in raw_flags if isinstance(item, dict)) if f]

    try:
        confidence = ConfidenceLevel(str(data.get("confidence", "low")).lower())
    except ValueError:
        confidence = ConfidenceLevel.LOW

    recommendations = data.get("recommendations") or []
    return DetectionAnalysis(
        overall_score=_clamp_score(data.get("overallScore")),
        confidence=confidence,
        summary=str(data.get("summary") or ""),
        flags=flags,
        metrics=DetectionMetrics.from_dict(data.get("metrics")),
        recommendations=[str(r) for r in recommendations if r] if isinstance(recommendations, list) else [],
    )


def coerce_flag(item: dict[str, Any]) -> FlagCandidate | None:
    """Build a FlagCandidate from one decoded flag object.

    Unknown flag types are dropped (returns None); other fields fall back
    to safe defaults.
    """
    kind_name = str(item.get("type", "")).strip().lower()
    try:
        kind = FlagKind(kind_name)
    except ValueError:
        logger.warning("Dropping flag with unknown type %r", kind_name)
        return None

    return FlagCandidate(
        kind=kind,
        severity=Severity.coerce(item.get("severity")),
        claimed_text=str(item.get("text") or ""),
        claimed_start_index=_as_int(item.get("startIndex")),
        claimed_end_index=_as_int(item.get("endIndex")),
        confidence=_clamp_score(item.get("confidence")),
        explanation=str(item.get("description") or ""),
        suggestion=str(item.get("suggestion") or ""),
    )


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _clamp_score(value: Any) -> int:
    return max(0, min(100, _as_int(value)))


def score_label(score: int) -> str:
    """Human-readable verdict for an overall score."""
    if score >= 80:
        return "Very Likely AI"
    if score >= 60:
        return "Likely AI"
    if score >= 40:
        return "Possibly AI"
    if score >= 20:
        return "Unlikely AI"
    return "Likely Human"
