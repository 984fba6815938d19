# api/main.py
"""
Flask entrypoint for the Python IDE execution API.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request

from api.config import SERVICE_NAME, VERSION, Settings
from api.controller import RunnerUnavailable, run_request
from sandbox.executor import ExecutorUnavailable

logger = logging.getLogger(__name__)

ENDPOINTS = {"health": "/health", "run": "/api/run", "warmup": "/warmup"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config["SETTINGS"] = settings

    if settings.runner_url:
        logger.info("Executing code on remote runner %s", settings.runner_url)
    elif settings.executor.is_degraded:
        logger.warning(
            "CONTAINMENT=local: untrusted code runs directly on this host. "
            "Use docker containment for any public deployment."
        )

    @app.before_request
    def log_request():
        logger.info(
            "%s %s - Origin: %s", request.method, request.path, request.headers.get("Origin", "none")
        )

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify(
            {
                "ok": True,
                "service": SERVICE_NAME,
                "version": VERSION,
                "containment": settings.containment,
                "timestamp": _now(),
            }
        )

    @app.route("/warmup", methods=["GET"])
    def warmup():
        return jsonify({"status": "warmed up", "timestamp": _now()})

    @app.route("/", methods=["GET"])
    def index():
        return jsonify(
            {
                "message": f"{SERVICE_NAME} Server",
                "version": VERSION,
                "endpoints": ENDPOINTS,
                "status": "operational",
            }
        )

    @app.route("/api/run", methods=["POST"])
    def run():
        # Ensure valid JSON payload
        data = request.get_json(force=True, silent=True)
        if not isinstance(data, dict):
            return jsonify({"success": False, "output": "Invalid JSON payload."}), 400

        try:
            body, status = run_request(data, settings)
        except RunnerUnavailable:
            logger.exception("Remote runner failed")
            return jsonify({"success": False, "output": "Server Error: execution runner unavailable."}), 502
        except (ExecutorUnavailable, OSError):
            logger.exception("Executor failed")
            return jsonify({"success": False, "output": "Server Error: code execution is unavailable."}), 500
        except Exception:
            logger.exception("Unexpected error while handling /api/run")
            return jsonify({"success": False, "output": "Server Error: internal error while executing code."}), 500

        return jsonify(body), status

    @app.errorhandler(404)
    def not_found(_error):
        return (
            jsonify(
                {
                    "error": "Route not found",
                    "path": request.path,
                    "availableEndpoints": sorted(ENDPOINTS.values()),
                }
            ),
            404,
        )

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return jsonify({"error": "Method not allowed", "path": request.path}), 405

    return app


_settings = Settings.from_env()
logging.basicConfig(level=_settings.log_level)

# WSGI entrypoint, e.g. `gunicorn api.main:app`
app = create_app(_settings)


if __name__ == "__main__":
    # Run with: python -m api.main  (from the project root)
    app.run(host="0.0.0.0", port=_settings.port, threaded=True)
