"""
Audio download via yt-dlp.
"""

import logging
import subprocess
from pathlib import Path

from ytanalysis.core.security_utils import run_subprocess_capture
from ytanalysis.core.error_codes import JobError
from ytanalysis.core.constants import ErrorCode, YTDLP_AUDIO_FORMAT, DOWNLOAD_TIMEOUT_SEC

logger = logging.getLogger(__name__)

SOURCE_STEM = "source"


def _ytdlp_error(stderr: str) -> str:
    """The line yt-dlp prefixes with ERROR:, else the tail of stderr."""
    lines = [line.strip() for line in (stderr or "").splitlines() if line.strip()]
    for line in reversed(lines):
        if line.startswith("ERROR:"):
            return line
    return lines[-1][:300] if lines else "no output"


def download_audio(video_url: str, output_dir: Path,
                   format_selector: str = YTDLP_AUDIO_FORMAT) -> Path:
    """
    Fetch the audio stream of `video_url` into `output_dir` as source.<ext>.
    The container is whatever YouTube serves; normalize_audio turns it into WAV.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    args = [
        "yt-dlp",
        "--no-playlist",
        "--no-progress",
        "--no-part",
        "-f", format_selector,
        "-o", str(output_dir / f"{SOURCE_STEM}.%(ext)s"),
        video_url,
    ]

    try:
        result = run_subprocess_capture(args, timeout=DOWNLOAD_TIMEOUT_SEC)
    except subprocess.TimeoutExpired:
        raise JobError(ErrorCode.DOWNLOAD_FAILED,
                       f"Audio download failed: timed out after {DOWNLOAD_TIMEOUT_SEC}s")
    except OSError as e:
        raise JobError(ErrorCode.DOWNLOAD_FAILED, f"Audio download failed: {e}")

    if result.returncode != 0:
        raise JobError(ErrorCode.DOWNLOAD_FAILED,
                       f"yt-dlp download failed (rc={result.returncode}): {_ytdlp_error(result.stderr)}")

    candidates = [p for p in output_dir.glob(f"{SOURCE_STEM}.*") if p.is_file()]
    if not candidates:
        raise JobError(ErrorCode.DOWNLOAD_FAILED, "No audio file found after download")

    downloaded = max(candidates, key=lambda p: p.stat().st_size)
    logger.info("Downloaded audio: %s (%d bytes)", downloaded.name, downloaded.stat().st_size)
    return downloaded
