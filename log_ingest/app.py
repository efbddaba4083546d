import json
import logging
from datetime import datetime, timezone

from flask import Flask, Response, jsonify, request

from log_ingest.broadcast import LogBroadcaster
from log_ingest.config import Config
from log_ingest.errors import LockTimeout, StorageError, ValidationError
from log_ingest.models import LEVELS, format_timestamp
from log_ingest.query import LogFilter, QueryEngine
from log_ingest.storage import LogStore
from log_ingest.validator import LogValidator

logger = logging.getLogger(__name__)


def format_sse(event) -> str:
    """Render a broadcast event as one Server-Sent Events frame."""
    return f"event: {event.name}\ndata: {json.dumps(event.data)}\n\n"


def create_app(config=None, store=None, broadcaster=None):
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = Config()

    if store is None:
        store = LogStore(
            config["storage"]["path"],
            lock_timeout=config["storage"]["lock_timeout_seconds"],
        )
    if broadcaster is None:
        broadcaster = LogBroadcaster(queue_size=config["stream"]["queue_size"])

    store.initialize()
    engine = QueryEngine(store)
    validator = LogValidator(config["schema"]["path"])

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "store": store,
        "engine": engine,
        "validator": validator,
        "broadcaster": broadcaster,
    }

    def _now():
        return format_timestamp(datetime.now(timezone.utc))

    # --- Error mapping ---

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return jsonify({"success": False, "error": str(exc)}), 400

    @app.errorhandler(LockTimeout)
    def handle_lock_timeout(exc):
        logger.warning("Write rejected: %s", exc)
        resp = jsonify({"success": False, "error": str(exc)})
        resp.headers["Retry-After"] = "1"
        return resp, 503

    @app.errorhandler(StorageError)
    def handle_storage_error(exc):
        logger.warning("Storage fault: %s", exc)
        return jsonify({"success": False, "error": str(exc)}), 500

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify({
            "success": True,
            "message": "Server is healthy",
            "timestamp": _now(),
            "connectedClients": broadcaster.connected_count,
        })

    @app.route("/logs", methods=["POST"])
    def create_log():
        body = request.get_json(silent=True)

        is_valid, errors = validator.validate(body)
        if not is_valid:
            return jsonify({"success": False, "error": errors[0], "errors": errors}), 400

        record = engine.submit(body)
        created = record.to_dict()

        broadcaster.broadcast_new_log(created)
        by_level = engine.count_by_level()
        broadcaster.broadcast_log_stats({
            "logsByLevel": by_level,
            "totalLogs": sum(by_level.values()),
            "latestLog": created,
        })

        return jsonify(created), 201

    @app.route("/logs", methods=["GET"])
    def get_logs():
        filters = LogFilter.from_params(request.args)
        return jsonify([record.to_dict() for record in engine.query(filters)])

    @app.route("/logs/stats")
    def get_log_stats():
        data = engine.stats()
        data["timestamp"] = _now()
        return jsonify({"success": True, "data": data})

    @app.route("/logs/debug")
    def get_debug_info():
        info = store.info()
        return jsonify({
            "success": True,
            "debug": {
                "storage": {
                    "exists": info.exists,
                    "size": info.size_bytes,
                    "logCount": info.log_count,
                    "locked": store.is_locked(),
                },
                "isValid": store.validate(),
                "stream": {"connectedClients": broadcaster.connected_count},
                "validation": validator.get_stats(),
                "timestamp": _now(),
            },
        })

    @app.route("/logs/reset", methods=["POST"])
    def reset_storage():
        engine.reset()
        validator.reset_stats()
        logger.info("Log store reset")

        broadcaster.broadcast_system_notification("Storage has been reset", "info")
        broadcaster.broadcast_log_stats({
            "logsByLevel": {level: 0 for level in LEVELS},
            "totalLogs": 0,
            "reset": True,
        })

        return jsonify({"success": True, "message": "Storage reset successfully"})

    @app.route("/stream")
    def stream():
        keepalive = config["stream"]["keepalive_seconds"]

        def generate():
            sub = broadcaster.subscribe()
            try:
                while True:
                    event = sub.get(timeout=keepalive)
                    if event is None:
                        yield ": keepalive\n\n"
                    else:
                        yield format_sse(event)
            finally:
                broadcaster.unsubscribe(sub)

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.route("/stream/status")
    def stream_status():
        return jsonify({
            "success": True,
            "connectedClients": broadcaster.connected_count,
            "timestamp": _now(),
        })

    return app
