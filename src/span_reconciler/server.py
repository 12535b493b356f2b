"""HTTP sidecar server for span-reconciler.

Runs a small stdlib HTTP server on localhost so the request handler that
talks to the detection model can hand off reconciliation without
spawning a process per request.

Endpoints:
    GET  /health          — Health check
    POST /sanitize        — {"text": ...} → {"text": canonical}
    POST /reconcile       — {"text": ..., "flags": [...]} → canonical + flags
    POST /highlight       — {"text": ..., "flags": [...]} → highlighted markup
    POST /analyze         — {"text": ..., "model_output": ...} → full report

All endpoints expect/return JSON.
"""

from __future__ import annotations
import json
import logging
import os
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any

from dotenv import load_dotenv

from .analysis import coerce_flag
from .config import create_pipeline, load_config, load_from_yaml
from .highlight import highlight
from .logging_config import configure_logging
from .pipeline import DetectionPipeline
from .sanitize import sanitize
from .types import FlagCandidate

logger = logging.getLogger(__name__)

load_dotenv()
DEFAULT_PORT = int(os.environ.get("SPAN_RECONCILER_PORT", "18792"))


class ReconcileHandler(BaseHTTPRequestHandler):
    """HTTP request handler; ``pipeline`` is bound by :func:`make_handler`."""

    pipeline: DetectionPipeline

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        data = json.loads(body) if body else {}
        if not isinstance(data, dict):
            raise ValueError("request body must be a JSON object")
        return data

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def _flags(self, body: dict[str, Any]) -> list[FlagCandidate]:
        raw_flags = body.get("flags") or []
        if not isinstance(raw_flags, list):
            raise ValueError("'flags' must be a list")
        return [f for f in (coerce_flag(item) for item in raw_flags if isinstance(item, dict)) if f]

    def do_GET(self) -> None:
        if self.path == "/health":
            self._respond(200, {"status": "ok"})
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        try:
            body = self._read_json()
            text = str(body.get("text") or "")
            reconciler = self.pipeline.reconciler

            if self.path == "/sanitize":
                self._respond(200, {"text": sanitize(text)})

            elif self.path == "/reconcile":
                result = reconciler.reconcile_text(text, self._flags(body))
                self._respond(200, {
                    "canonicalText": result.canonical,
                    "flags": [f.to_dict() for f in result.flags],
                })

            elif self.path == "/highlight":
                result = reconciler.reconcile_text(text, self._flags(body))
                self._respond(200, {
                    "canonicalText": result.canonical,
                    "highlighted": highlight(result.canonical, result.flags),
                })

            elif self.path == "/analyze":
                report = self.pipeline.run(text, str(body.get("model_output") or ""))
                self._respond(200, report.to_dict())

            else:
                self._respond(404, {"error": "not found"})

        except ValueError as e:
            self._respond(400, {"error": str(e)})
        except Exception as e:
            logger.exception("Unhandled error on %s", self.path)
            self._respond(500, {"error": str(e)})


def make_handler(pipeline: DetectionPipeline) -> type[ReconcileHandler]:
    """Bind *pipeline* to a fresh handler class."""
    return type("BoundReconcileHandler", (ReconcileHandler,), {"pipeline": pipeline})


def make_server(
    pipeline: DetectionPipeline,
    host: str = "127.0.0.1",
    port: int = DEFAULT_PORT,
) -> HTTPServer:
    return HTTPServer((host, port), make_handler(pipeline))


def serve(port: int = DEFAULT_PORT, config: dict[str, Any] | None = None) -> None:
    """Start the span-reconciler HTTP sidecar."""
    cfg = load_config(config)
    configure_logging(cfg["log_level"], structured=cfg["log_format"] == "json")

    server = make_server(create_pipeline(cfg), port=port)
    logger.info("span-reconciler sidecar listening on http://127.0.0.1:%d", port)
    logger.info("  max_workers: %d, highlight: %s", cfg["max_workers"], cfg["highlight"])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        server.server_close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="span-reconciler HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--config", default=os.environ.get("SPAN_RECONCILER_CONFIG"))
    args = parser.parse_args()
    serve(port=args.port, config=load_from_yaml(args.config) if args.config else None)
