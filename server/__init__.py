"""Flask application exposing the options and synopsis endpoints."""
from __future__ import annotations

import uuid
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from cache import ResultCache
from domain.models import OptionsPayload
from observability.logger import bind_trace_id, clear_trace_id, current_trace_id, get_logger
from observability.metrics import MetricsRegistry, get_registry
from orchestrate import (
    HandlerResponse,
    OptionsHandler,
    SynopsisHandler,
    build_options_cache,
    gather_health_status,
)
from services.llm_client import GenerationService
from services.rate_gate import RequestGate, build_request_gate

load_dotenv()

LOGGER = get_logger("setting_forge.api")

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def _to_flask(result: HandlerResponse) -> Response:
    response = jsonify(result.body)
    response.status_code = result.status
    for name, value in result.headers.items():
        response.headers[name] = value
    return response


def _preflight(methods: str, *, allow_headers: Optional[str] = None) -> Response:
    response = Response(status=200)
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = methods
    if allow_headers:
        response.headers["Access-Control-Allow-Headers"] = allow_headers
    return response


def create_app(
    *,
    gate: Optional[RequestGate] = None,
    cache: Optional[ResultCache[OptionsPayload]] = None,
    service: Optional[GenerationService] = None,
    metrics: Optional[MetricsRegistry] = None,
) -> Flask:
    app = Flask(__name__)
    if hasattr(app, "json"):
        app.json.ensure_ascii = False
    CORS(
        app,
        resources={
            r"/options": {"methods": ["GET", "OPTIONS"]},
            r"/api/options": {"methods": ["GET", "OPTIONS"]},
            r"/synopsis": {"methods": ["POST", "OPTIONS"], "allow_headers": ["content-type"]},
            r"/api/synopsis": {"methods": ["POST", "OPTIONS"], "allow_headers": ["content-type"]},
            r"/health": {"methods": ["GET"]},
        },
        origins="*",
        send_wildcard=True,
    )

    registry = metrics or get_registry()
    request_gate = gate if gate is not None else build_request_gate()
    options_cache = cache if cache is not None else build_options_cache()
    options_handler = OptionsHandler(gate=request_gate, cache=options_cache, service=service, metrics=registry)
    synopsis_handler = SynopsisHandler(gate=request_gate, service=service, metrics=registry)
    app.extensions["setting_forge"] = {
        "gate": request_gate,
        "cache": options_cache,
        "options_handler": options_handler,
        "synopsis_handler": synopsis_handler,
    }

    @app.before_request
    def _bind_request_trace() -> None:
        trace_id = request.headers.get("X-Trace-Id") or uuid.uuid4().hex
        g.trace_id = trace_id
        bind_trace_id(trace_id)

    @app.after_request
    def _append_trace(response):  # type: ignore[override]
        trace_id = getattr(g, "trace_id", None)
        if trace_id:
            response.headers.setdefault("X-Trace-Id", trace_id)
        return response

    @app.teardown_request
    def _teardown_trace(_exc):  # type: ignore[override]
        clear_trace_id()

    @app.errorhandler(Exception)
    def _handle_generic_error(exc: Exception):  # type: ignore[override]
        if isinstance(exc, HTTPException):
            return exc
        LOGGER.exception("Unhandled error")
        trace_id = current_trace_id()
        return jsonify({"error": "internal_error", "trace_id": trace_id}), 500

    @app.route("/options", methods=["GET", "OPTIONS"])
    @app.route("/api/options", methods=["GET", "OPTIONS"])
    def options():
        if request.method == "OPTIONS":
            return _preflight("GET,OPTIONS")
        return _to_flask(options_handler.handle(request.headers.get(FORWARDED_FOR_HEADER)))

    @app.route("/synopsis", methods=["POST", "OPTIONS"])
    @app.route("/api/synopsis", methods=["POST", "OPTIONS"])
    def synopsis():
        if request.method == "OPTIONS":
            return _preflight("POST,OPTIONS", allow_headers="content-type")
        body = request.get_json(force=True, silent=True)
        if body is None:
            body = {}
        return _to_flask(synopsis_handler.handle(request.headers.get(FORWARDED_FOR_HEADER), body))

    @app.get("/health")
    def health():
        return jsonify(gather_health_status(gate=request_gate, cache=options_cache, metrics=registry))

    return app


__all__ = ["create_app"]
