"""
Diagnostics: external tool versions and hosted API configuration.
Used by the startup banner and GET /health.
"""

import shutil
import logging
import subprocess

from ytanalysis.core.config import AppConfig
from ytanalysis.core.security_utils import run_subprocess_capture

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("yt-dlp", "ffmpeg")


def _tool_version(args: list[str]) -> str:
    """First line of `<tool> --version`-style output, or a short status string."""
    try:
        result = run_subprocess_capture(args, timeout=10)
    except FileNotFoundError:
        return "Not installed"
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("Could not query %s: %s", args[0], e)
        return f"Error: {e}"

    if result.returncode != 0:
        return f"Error (rc={result.returncode})"
    lines = (result.stdout or "").strip().splitlines()
    return lines[0] if lines else "unknown"


def get_ytdlp_version() -> str:
    return _tool_version(["yt-dlp", "--version"])


def get_ffmpeg_version() -> str:
    return _tool_version(["ffmpeg", "-version"])


def missing_tools() -> list[str]:
    return [tool for tool in REQUIRED_TOOLS if not shutil.which(tool)]


def api_status(config: AppConfig) -> dict:
    """Which hosted APIs are usable, without revealing keys."""
    return {
        "elevenlabs": "configured" if config.elevenlabs_api_key else "missing",
        "gptzero": "api_key_configured" if config.gptzero_api_key else "free_api_available",
    }


def get_diagnostics(config: AppConfig) -> dict:
    return {
        "ytdlp_version": get_ytdlp_version(),
        "ffmpeg_version": get_ffmpeg_version(),
        "missing_tools": missing_tools(),
        "apis": api_status(config),
    }
