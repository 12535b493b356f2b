"""Reconciler — the main API.  Maps model-quoted fragments onto real spans.

Usage:
    from span_reconciler import Reconciler, FlagCandidate, FlagKind, Severity

    reconciler = Reconciler()     # stateless, reusable across threads
    flag = FlagCandidate(FlagKind.BUZZWORD_HEAVY, Severity.HIGH,
                         claimed_text="quick brown fox", confidence=80)

    result = reconciler.reconcile_text("<p>The quick brown fox</p>", [flag])
    print(result.canonical)                       # "The quick brown fox"
    print(result.flags[0].resolved_start_index)   # 4
"""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from .matching import adjust_confidence, is_document_wide, locate
from .sanitize import sanitize
from .types import ENTIRE_TEXT, FlagCandidate, MatchStrategy, ReconciledText, ResolvedFlag

logger = logging.getLogger(__name__)


@dataclass
class ReconcilerConfig:
    """Configuration for the Reconciler."""
    max_workers: int = 1          # > 1 resolves flags on a thread pool


class Reconciler:
    """Resolves each flag independently against one canonical text.

    Document-wide findings short-circuit to the whole text; everything
    else runs the matching cascade in :mod:`span_reconciler.matching`.
    """

    def __init__(self, config: ReconcilerConfig | None = None) -> None:
        self.config = config or ReconcilerConfig()

    def resolve(self, canonical: str, flag: FlagCandidate) -> ResolvedFlag:
        """Locate a single flag in *canonical* (already sanitized)."""
        claim = sanitize(flag.claimed_text)

        if is_document_wide(claim, canonical):
            return ResolvedFlag(
                candidate=flag,
                resolved_start_index=0,
                resolved_end_index=len(canonical),
                resolved_text=ENTIRE_TEXT,
                match_strategy=MatchStrategy.FALLBACK,
                adjusted_confidence=flag.confidence,
                document_wide=True,
            )

        location = locate(canonical, claim)
        confidence = adjust_confidence(flag.confidence, sanitize(location.text), claim)
        if location.strategy is not MatchStrategy.EXACT:
            logger.debug(
                "Flag %s resolved via %s at [%d, %d): claimed %r, found %r",
                flag.kind.value, location.strategy.value,
                location.start, location.end, claim, location.text,
            )

        return ResolvedFlag(
            candidate=flag,
            resolved_start_index=location.start,
            resolved_end_index=location.end,
            resolved_text=location.text,
            match_strategy=location.strategy,
            adjusted_confidence=confidence,
        )

    def reconcile(self, canonical: str, flags: list[FlagCandidate]) -> list[ResolvedFlag]:
        """Resolve every flag; output order mirrors *flags*."""
        if self.config.max_workers > 1 and len(flags) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                resolved = list(pool.map(lambda f: self.resolve(canonical, f), flags))
        else:
            resolved = [self.resolve(canonical, f) for f in flags]

        if resolved:
            logger.debug(
                "Reconciled %d flag(s): %s",
                len(resolved), _strategy_counts(resolved),
            )
        return resolved

    def reconcile_text(self, raw: str, flags: list[FlagCandidate]) -> ReconciledText:
        """Sanitize *raw*, then reconcile *flags* against the result."""
        canonical = sanitize(raw)
        return ReconciledText(canonical=canonical, flags=self.reconcile(canonical, flags))


def reconcile(canonical: str, flags: list[FlagCandidate]) -> list[ResolvedFlag]:
    """Reconcile with the default configuration."""
    return Reconciler().reconcile(canonical, flags)


def _strategy_counts(flags: list[ResolvedFlag]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for f in flags:
        counts[f.match_strategy.value] = counts.get(f.match_strategy.value, 0) + 1
    return counts
