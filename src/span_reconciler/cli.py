"""CLI interface for span-reconciler.

Usage:
    # Canonical form of some text (stdin: raw text, stdout: sanitized text)
    echo '<p>Hello &amp; welcome</p>' | python -m span_reconciler.cli sanitize

    # Reconcile flags (stdin: {"text": ..., "flags": [...]}, stdout: JSON)
    python -m span_reconciler.cli reconcile < request.json

    # Full detection report from a raw model reply
    python -m span_reconciler.cli analyze --text-file essay.txt < reply.txt

    # Reconcile and emit highlighted markup
    python -m span_reconciler.cli highlight < request.json

Flags use the model's wire shape: type, severity, description, text,
startIndex, endIndex, confidence, suggestion.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from typing import Any

from dotenv import load_dotenv

from .analysis import coerce_flag
from .config import create_pipeline, load_config, load_from_yaml
from .highlight import highlight
from .logging_config import configure_logging
from .sanitize import sanitize
from .types import FlagCandidate

logger = logging.getLogger(__name__)


def _load_settings(args: argparse.Namespace) -> dict[str, Any]:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if args.max_workers is not None:
        cfg["max_workers"] = args.max_workers
    if args.log_level:
        cfg["log_level"] = args.log_level.upper()
    return cfg


def _read_request() -> tuple[str, list[FlagCandidate]]:
    body = json.loads(sys.stdin.read())
    if not isinstance(body, dict):
        raise ValueError("request must be a JSON object with 'text' and 'flags'")
    raw_flags = body.get("flags") or []
    if not isinstance(raw_flags, list):
        raise ValueError("'flags' must be a list")
    flags = [f for f in (coerce_flag(item) for item in raw_flags if isinstance(item, dict)) if f]
    return str(body.get("text") or ""), flags


def _dump(data: Any) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_sanitize(args: argparse.Namespace, cfg: dict[str, Any]) -> None:
    """Print the canonical form of stdin."""
    sys.stdout.write(sanitize(sys.stdin.read()))
    sys.stdout.write("\n")


def cmd_reconcile(args: argparse.Namespace, cfg: dict[str, Any]) -> None:
    """Reconcile a {text, flags} request from stdin."""
    text, flags = _read_request()
    result = create_pipeline(cfg).reconciler.reconcile_text(text, flags)
    _dump({
        "canonicalText": result.canonical,
        "flags": [f.to_dict() for f in result.flags],
    })


def cmd_highlight(args: argparse.Namespace, cfg: dict[str, Any]) -> None:
    """Reconcile a {text, flags} request and print highlighted markup."""
    text, flags = _read_request()
    result = create_pipeline(cfg).reconciler.reconcile_text(text, flags)
    sys.stdout.write(highlight(result.canonical, result.flags))
    sys.stdout.write("\n")


def cmd_analyze(args: argparse.Namespace, cfg: dict[str, Any]) -> None:
    """Build a detection report from --text-file and a model reply on stdin."""
    with open(args.text_file, encoding="utf-8") as f:
        text = f.read()
    pipeline = create_pipeline(cfg)
    if args.highlight:
        pipeline.with_highlight = True
    report = pipeline.run(text, sys.stdin.read())
    _dump(report.to_dict())


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(
        prog="span_reconciler",
        description="Locate model-quoted flag text inside the analysed document",
    )
    parser.add_argument("--config", default=os.environ.get("SPAN_RECONCILER_CONFIG"),
                        help="YAML config file")
    parser.add_argument("--max-workers", type=int, default=None, help="Thread pool size for flags")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sanitize", help="Sanitize text (stdin)")
    sub.add_parser("reconcile", help="Reconcile flags (JSON stdin)")
    sub.add_parser("highlight", help="Reconcile and highlight (JSON stdin)")
    p_analyze = sub.add_parser("analyze", help="Report from a raw model reply (stdin)")
    p_analyze.add_argument("--text-file", required=True, help="File holding the analysed text")
    p_analyze.add_argument("--highlight", action="store_true", help="Include highlighted markup")

    args = parser.parse_args(argv)

    cmds = {
        "sanitize": cmd_sanitize,
        "reconcile": cmd_reconcile,
        "highlight": cmd_highlight,
        "analyze": cmd_analyze,
    }
    try:
        cfg = _load_settings(args)
        configure_logging(cfg["log_level"], structured=cfg["log_format"] == "json")
        cmds[args.command](args, cfg)
    except (ValueError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        sys.stderr.write(f"error: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
