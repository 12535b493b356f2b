"""Detection pipeline — assembles the response the web client renders.

Usage:
    pipeline = DetectionPipeline.create()

    # model_reply is the raw text returned by the detection model
    report = pipeline.run(user_text, model_reply)
    payload = report.to_dict()      # {"analysis": {...}, "originalText": ...}
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .analysis import DetectionAnalysis, parse_analysis, score_label
from .highlight import highlight
from .reconciler import Reconciler, ReconcilerConfig
from .types import ResolvedFlag


@dataclass(slots=True)
class DetectionReport:
    """A parsed analysis whose flags point at real spans."""
    original_text: str
    canonical_text: str
    analysis: DetectionAnalysis
    flags: list[ResolvedFlag] = field(default_factory=list)
    highlighted: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "analysis": {
                "overallScore": self.analysis.overall_score,
                "scoreLabel": score_label(self.analysis.overall_score),
                "confidence": self.analysis.confidence.value,
                "summary": self.analysis.summary,
                "flags": [f.to_dict() for f in self.flags],
                "metrics": self.analysis.metrics.to_dict(),
                "recommendations": list(self.analysis.recommendations),
            },
            "originalText": self.original_text,
            "canonicalText": self.canonical_text,
        }
        if self.highlighted is not None:
            out["highlighted"] = self.highlighted
        return out


@dataclass
class DetectionPipeline:
    """Parse → sanitize → reconcile (→ highlight)."""

    reconciler: Reconciler
    with_highlight: bool = False

    @classmethod
    def create(
        cls,
        *,
        config: ReconcilerConfig | None = None,
        with_highlight: bool = False,
    ) -> "DetectionPipeline":
        """Factory — creates a pipeline with its own reconciler."""
        return cls(reconciler=Reconciler(config), with_highlight=with_highlight)

    def run(self, text: str, model_output: str) -> DetectionReport:
        """Build a report for *text* from the model's raw reply.

        Raises ValueError if *text* is empty or whitespace.
        """
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Text content is required for AI detection analysis")

        analysis = parse_analysis(model_output)
        return self.run_analysis(text, analysis)

    def run_analysis(self, text: str, analysis: DetectionAnalysis) -> DetectionReport:
        """Same as :meth:`run` for an analysis that is already parsed."""
        reconciled = self.reconciler.reconcile_text(text, analysis.flags)
        report = DetectionReport(
            original_text=text,
            canonical_text=reconciled.canonical,
            analysis=analysis,
            flags=reconciled.flags,
        )
        if self.with_highlight:
            report.highlighted = highlight(reconciled.canonical, reconciled.flags)
        return report
