"""
HTTP routes: submission, polling, health and artifact download.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from ytanalysis.core.ai_detect import probe_detector
from ytanalysis.core.constants import ErrorCode
from ytanalysis.core.diagnostics import api_status
from ytanalysis.core.error_codes import JobError

logger = logging.getLogger(__name__)

bp = Blueprint("analysis", __name__)

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>YouTube Analysis Service</title>
    <style>
        body { font-family: Arial, sans-serif; max-width: 800px; margin: 50px auto; padding: 20px; }
        form { background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0; }
        input[type="url"] { width: 100%; padding: 10px; margin: 10px 0; box-sizing: border-box; }
        button { background: #007cba; color: white; padding: 10px 20px; border: none; border-radius: 4px; }
    </style>
</head>
<body>
    <h1>YouTube Analysis Service</h1>
    <p>Screenshot, 16kHz WAV audio, word-level transcription and per-segment AI detection.</p>
    <form action="/analyze" method="post">
        <label for="youtube_url"><strong>Enter YouTube URL:</strong></label>
        <input type="url" id="youtube_url" name="youtube_url" required
               placeholder="https://www.youtube.com/watch?v=..." />
        <button type="submit">Analyze Video</button>
    </form>
    <h3>API Endpoints</h3>
    <p><strong>POST /analyze</strong> - Submit YouTube URL for analysis</p>
    <p><strong>GET /result/:id</strong> - Retrieve analysis results</p>
    <p><strong>GET /status/:id</strong> - Check analysis status</p>
    <p><strong>GET /test-gptzero</strong> - Test GPTZero API access</p>
</body>
</html>
"""


def _ext() -> dict:
    return current_app.extensions["ytanalysis"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _client_id() -> str:
    return request.remote_addr or "unknown"


@bp.get("/")
def index():
    return INDEX_HTML


@bp.post("/analyze")
def analyze():
    limiter = _ext()["limiter"]
    client = _client_id()

    if not limiter.is_allowed(client):
        logger.warning("Rate limit exceeded for %s", client)
        resp = jsonify({"error": "Too many requests, please try again later."})
        resp.status_code = 429
        resp.headers["Retry-After"] = str(limiter.retry_after(client))
        resp.headers["X-RateLimit-Limit"] = str(limiter.limit)
        resp.headers["X-RateLimit-Remaining"] = "0"
        return resp

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = request.form
    youtube_url = payload.get("youtube_url")
    if not isinstance(youtube_url, str):
        youtube_url = None

    try:
        submission = _ext()["orchestrator"].submit(youtube_url)
        resp = jsonify({**submission.to_dict(),
                        "estimated_time": "2-5 minutes depending on video length"})
    except JobError as e:
        if e.code != ErrorCode.INVALID_URL:
            raise
        resp = jsonify({"error": e.message})
        resp.status_code = 400

    resp.headers["X-RateLimit-Limit"] = str(limiter.limit)
    resp.headers["X-RateLimit-Remaining"] = str(limiter.get_remaining(client))
    return resp


@bp.get("/result/<job_id>")
def result(job_id: str):
    try:
        return jsonify(_ext()["orchestrator"].get_result(job_id))
    except JobError as e:
        if e.code != ErrorCode.RESULT_NOT_FOUND:
            raise
        return jsonify({"error": "Result not found"}), 404


@bp.get("/status/<job_id>")
def status(job_id: str):
    return jsonify(_ext()["orchestrator"].get_status(job_id))


@bp.get("/health")
def health():
    return jsonify({
        "status": "healthy",
        "timestamp": _now(),
        "apis": api_status(_ext()["config"]),
    })


@bp.get("/test-gptzero")
def test_gptzero():
    detector = _ext()["orchestrator"].adapters.detector.primary
    working = probe_detector(detector)
    return jsonify({
        "gptzero_api": "working" if working else "not accessible",
        "message": ("GPTZero API is accessible and working!" if working else
                    "GPTZero API is not accessible, will use fallback methods"),
        "timestamp": _now(),
    })


@bp.get("/screenshots/<path:filename>")
def screenshot_file(filename: str):
    return send_from_directory(_ext()["config"].screenshots_dir.resolve(), filename)


@bp.get("/audio/<path:filename>")
def audio_file(filename: str):
    return send_from_directory(_ext()["config"].audio_dir.resolve(), filename)
