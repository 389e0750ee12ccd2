#!/usr/bin/env python3
"""
YouTube Analysis Service v1.0.0, main entry point.
Serves the Flask app with waitress.
"""

import sys
import logging
import traceback
from datetime import datetime

from waitress import serve

from ytanalysis.core.config import AppConfig
from ytanalysis.core.constants import APP_NAME, APP_VERSION
from ytanalysis.core.ai_detect import probe_detector
from ytanalysis.core.diagnostics import get_diagnostics, missing_tools

logger = logging.getLogger("ytanalysis")


def setup_logging(config: AppConfig):
    """Log to <data_root>/logs/app.log and stderr."""
    config.logs_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(config.logs_dir / "app.log", encoding="utf-8"),
            logging.StreamHandler(sys.stderr),
        ],
    )


def check_prerequisites():
    """Check that yt-dlp and ffmpeg are available, exit if not."""
    missing = missing_tools()
    if missing:
        logger.error("Missing required tools: %s", ", ".join(missing))
        sys.exit(1)


def main():
    config = AppConfig()
    setup_logging(config)

    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("Config: %s", config.as_dict())
    logger.info("=" * 60)

    try:
        check_prerequisites()
        diagnostics = get_diagnostics(config)
        logger.info("yt-dlp: %s", diagnostics["ytdlp_version"])
        logger.info("ffmpeg: %s", diagnostics["ffmpeg_version"])
        logger.info("ElevenLabs API: %s", diagnostics["apis"]["elevenlabs"])

        from ytanalysis.web.server import create_app
        app = create_app(config)

        detector = app.extensions["ytanalysis"]["orchestrator"].adapters.detector.primary
        gptzero_working = probe_detector(detector)
        logger.info("GPTZero API: %s", "working" if gptzero_working else "limited/fallback")

        logger.info("Serving on %s:%d", config.host, config.port)
        serve(app, host=config.host, port=config.port, threads=8)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        sys.exit(1)


if __name__ == "__main__":
    main()
