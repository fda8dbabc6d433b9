from __future__ import annotations

import logging
from functools import partial, wraps

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..cache.coherence import CachedRead
from ..container import Container
from ..core.constants import CACHE_STATUS_HEADER
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)

PREFIX = "/api/attendance"


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    config_service = container.config_service

    def token_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.identity = container.token_decoder.from_header(request.headers.get("Authorization"))
            return view(*args, **kwargs)

        return wrapper

    def _cached(read: CachedRead):
        resp = jsonify(read.value)
        resp.headers[CACHE_STATUS_HEADER] = read.status
        return resp

    def _json_body():
        return request.get_json(silent=True) or {}

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.status_code >= 500:
            logger.error("Request %s %s failed: %s", request.method, request.path, e)
        return jsonify({"error": str(e) or "Internal server error"}), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    @app.route(f"{PREFIX}/grade-sections", methods=["GET"], endpoint="attendance_grade_sections")
    @token_required
    def grade_sections():
        return jsonify(service.list_markable_sections(g.identity))

    @app.route(PREFIX, methods=["GET"], endpoint="attendance_daily")
    @token_required
    def daily():
        read = service.daily_view(g.identity, request.args.get("grade_section_id"), request.args.get("date"))
        return _cached(read)

    @app.route(f"{PREFIX}/grade-sections/daily", methods=["GET"], endpoint="attendance_school_overview")
    @token_required
    def school_overview():
        return _cached(service.school_overview(g.identity, request.args.get("date")))

    @app.route(f"{PREFIX}/bulk-mark", methods=["POST"], endpoint="attendance_bulk_mark")
    @token_required
    def bulk_mark():
        # Cache invalidation has already happened inside bulk_mark; the
        # notification only starts once the response has been sent.
        outcome = service.bulk_mark(g.identity, _json_body())
        resp = jsonify(outcome.payload)
        if outcome.notification is not None:
            resp.call_on_close(partial(service.dispatch_notification, outcome.notification))
        return resp

    @app.route(f"{PREFIX}/reset", methods=["POST"], endpoint="attendance_reset")
    @token_required
    def reset():
        return jsonify(service.reset(g.identity, _json_body()))

    @app.route(f"{PREFIX}/stats", methods=["GET"], endpoint="attendance_stats")
    @token_required
    def stats():
        read = service.range_stats(
            g.identity,
            request.args.get("grade_section_id"),
            request.args.get("start_date"),
            request.args.get("end_date"),
        )
        return _cached(read)

    @app.route(f"{PREFIX}/history", methods=["GET"], endpoint="attendance_history")
    @token_required
    def history():
        read = service.student_history(
            g.identity,
            request.args.get("student_id"),
            request.args.get("start_date"),
            request.args.get("end_date"),
        )
        return _cached(read)

    @app.route(f"{PREFIX}/config", methods=["GET"], endpoint="attendance_config")
    @token_required
    def get_config():
        return jsonify({"config": config_service.get_config(g.identity).to_dict()})

    @app.route(f"{PREFIX}/config", methods=["PUT"], endpoint="attendance_config_update")
    @token_required
    def update_config():
        body = _json_body()
        config = config_service.update_config(g.identity, body.get("config") if isinstance(body, dict) else None)
        return jsonify({"message": "Attendance configuration updated successfully", "config": config.to_dict()})
