"""
Flask application factory.
"""

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ytanalysis.core.config import AppConfig
from ytanalysis.core.job_queue import JobOrchestrator
from ytanalysis.core.pipeline import PipelineAdapters, build_adapters
from ytanalysis.core.rate_limit import SlidingWindowRateLimiter
from ytanalysis.core.result_store import ResultStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = "ytanalysis"


def create_app(config: AppConfig | None = None,
               adapters: PipelineAdapters | None = None) -> Flask:
    """
    Build the service. `adapters` replaces the real screenshot/audio/
    transcription/detection capabilities (tests pass fakes here).
    """
    config = config or AppConfig()
    for directory in (config.results_dir, config.screenshots_dir,
                      config.audio_dir, config.jobs_dir):
        directory.mkdir(parents=True, exist_ok=True)

    store = ResultStore(config.results_dir)
    orchestrator = JobOrchestrator(config, store, adapters or build_adapters(config))
    limiter = SlidingWindowRateLimiter(config.rate_limit_max_requests,
                                       config.rate_limit_window_sec)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = {
        "config": config,
        "store": store,
        "orchestrator": orchestrator,
        "limiter": limiter,
    }

    from ytanalysis.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def unhandled(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": error.description}), error.code
        logger.error("Unhandled error: %s", error, exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    logger.info("Service ready (data root %s, rate limit %d/%ss)",
                config.data_root, config.rate_limit_max_requests,
                config.rate_limit_window_sec)
    return app
