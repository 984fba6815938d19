# sandbox/runner.py
"""
Runner service that executes synthesized Python programs.

Deploy this next to (or instead of) the API's own executor when execution has
to happen on a different host. The API forwards the synthesized source here when
RUNNER_URL is set; containment is chosen by this service's own environment
(CONTAINMENT, DOCKER_IMAGE, ...), see sandbox.config.
"""

import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

from sandbox.config import MAX_TIMEOUT_MS, ExecutorConfig, env_int
from sandbox.executor import ExecutorUnavailable, execute

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000


def create_app(config: Optional[ExecutorConfig] = None) -> Flask:
    app = Flask(__name__)
    config = config or ExecutorConfig.from_env()
    if config.is_degraded:
        logger.warning("Runner uses local containment: code runs directly on this host")

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"ok": True, "containment": config.containment})

    @app.route("/run", methods=["POST"])
    def run_source():
        """
        Request JSON format:
          { "source": "<python source>", "timeout_ms": <int milliseconds> }

        Response JSON format:
          { "stdout": str, "stderr": str, "returncode": int | null, "timed_out": bool,
            "output_truncated": bool, "duration_ms": int }
        """
        data = request.get_json(force=True, silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload."}), 400

        source = data.get("source")
        if not isinstance(source, str):
            return jsonify({"error": "Missing or invalid 'source'"}), 400

        timeout_ms = data.get("timeout_ms", DEFAULT_TIMEOUT_MS)
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            return jsonify({"error": "'timeout_ms' must be a positive integer"}), 400
        if timeout_ms > MAX_TIMEOUT_MS:
            return jsonify({"error": f"'timeout_ms' must be at most {MAX_TIMEOUT_MS}"}), 400

        try:
            raw = execute(source, timeout_ms, config)
        except (ExecutorUnavailable, OSError):
            logger.exception("Runner could not execute source")
            return jsonify({"error": "Runner internal error"}), 500

        return jsonify(raw.to_dict())

    return app


logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

# WSGI entrypoint, e.g. `gunicorn sandbox.runner:app`
app = create_app()


if __name__ == "__main__":
    # for local debug
    app.run(host="0.0.0.0", port=env_int(os.environ, "RUNNER_PORT", 5000), threaded=True)
