"""
Capability adapters used by the job pipeline, bundled so the orchestrator
can be wired to real tools in production and to fakes in tests.
"""

import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable

from ytanalysis.core.config import AppConfig
from ytanalysis.core.ai_detect import DetectionChain, build_default_chain
from ytanalysis.core.cleanup import cleanup_job_workspace
from ytanalysis.core.download_audio import download_audio
from ytanalysis.core.models import Transcript
from ytanalysis.core.normalize import normalize_audio
from ytanalysis.core.screenshot import capture_screenshot
from ytanalysis.core.transcribe_elevenlabs import transcribe_audio

logger = logging.getLogger(__name__)


@dataclass
class PipelineAdapters:
    """
    capture_screenshot(url, png_path) -> png_path
    extract_audio(url, wav_path, workspace) -> wav_path
    transcribe(wav_path) -> Transcript
    """
    capture_screenshot: Callable[[str, Path], Path]
    extract_audio: Callable[[str, Path, Path], Path]
    transcribe: Callable[[Path], Transcript]
    detector: DetectionChain
    detection_delay_sec: float = 0.0


def extract_audio(video_url: str, output_path: Path, workspace: Path,
                  cleanup: bool = True) -> Path:
    """Download the audio stream into the scratch workspace and transcode it to WAV."""
    try:
        source = download_audio(video_url, workspace / "source")
        return normalize_audio(source, output_path)
    finally:
        cleanup_job_workspace(workspace, enabled=cleanup)


def build_adapters(config: AppConfig) -> PipelineAdapters:
    """Production wiring: selenium, yt-dlp + ffmpeg, ElevenLabs, GPTZero -> patterns."""
    return PipelineAdapters(
        capture_screenshot=capture_screenshot,
        extract_audio=partial(extract_audio, cleanup=config.cleanup_temp_files),
        transcribe=partial(
            transcribe_audio,
            api_key=config.elevenlabs_api_key,
            model_id=config.elevenlabs_model_id,
            language_code=config.elevenlabs_language,
        ),
        detector=build_default_chain(
            api_url=config.gptzero_api_url,
            api_key=config.gptzero_api_key,
            min_text_length=config.min_detection_text_len,
        ),
        detection_delay_sec=config.detection_delay_sec,
    )
