"""span-reconciler — locate model-quoted flag text inside the analysed document."""

from .reconciler import Reconciler, ReconcilerConfig, reconcile
from .sanitize import sanitize
from .analysis import DetectionAnalysis, DetectionMetrics, parse_analysis
from .highlight import highlight
from .pipeline import DetectionPipeline, DetectionReport
from .config import create_pipeline, create_reconciler, load_config, load_from_yaml
from .types import (
    ENTIRE_TEXT, FlagCandidate, FlagKind, MatchStrategy,
    ReconciledText, ResolvedFlag, Severity,
)

__all__ = [
    "Reconciler", "ReconcilerConfig", "reconcile",
    "sanitize",
    "DetectionAnalysis", "DetectionMetrics", "parse_analysis",
    "highlight",
    "DetectionPipeline", "DetectionReport",
    "create_pipeline", "create_reconciler", "load_config", "load_from_yaml",
    "ENTIRE_TEXT", "FlagCandidate", "FlagKind", "MatchStrategy",
    "ReconciledText", "ResolvedFlag", "Severity",
]
__version__ = "0.1.0"
