"""
Audio transcoding using ffmpeg.
Target: mono, 16kHz, 16-bit PCM WAV.
"""

import logging
import subprocess
from pathlib import Path

from ytanalysis.core.security_utils import run_subprocess_capture
from ytanalysis.core.error_codes import JobError
from ytanalysis.core.constants import (
    ErrorCode, AUDIO_CHANNELS, AUDIO_SAMPLE_RATE, AUDIO_CODEC, TRANSCODE_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)


def normalize_audio(input_path: Path, output_path: Path) -> Path:
    """
    Transcode any audio/video container into a mono 16kHz WAV file
    at `output_path`. Returns the output path.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    args = [
        "ffmpeg",
        "-y",                               # overwrite
        "-i", str(input_path),
        "-vn",                              # drop any video stream
        "-ar", str(AUDIO_SAMPLE_RATE),      # 16kHz
        "-ac", str(AUDIO_CHANNELS),         # mono
        "-codec:a", AUDIO_CODEC,
        str(output_path),
    ]

    try:
        result = run_subprocess_capture(args, timeout=TRANSCODE_TIMEOUT_SEC)
    except (subprocess.TimeoutExpired, OSError) as e:
        raise JobError(ErrorCode.FFMPEG_TRANSCODE, f"Audio conversion failed: {e}")

    if result.returncode != 0:
        stderr = result.stderr or ""
        raise JobError(ErrorCode.FFMPEG_TRANSCODE,
                       f"ffmpeg failed (rc={result.returncode}): {stderr[-300:]}")

    if not output_path.exists():
        raise JobError(ErrorCode.FFMPEG_TRANSCODE, "Converted audio file not created")

    logger.info("Audio converted: %s", output_path)
    return output_path
