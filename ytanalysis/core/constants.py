"""
Shared constants for the YouTube Analysis Service.
Single source of truth, imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "YouTubeAnalysisService"
APP_VERSION = "1.0.0"
USER_AGENT = "YouTube-Analysis-Service/1.0"

# ── Filesystem paths ─────────────────────────────────────────────────
DEFAULT_DATA_ROOT = pathlib.Path("./data")

# Sub-directories of the data root
RESULTS_DIRNAME = "results"
SCREENSHOTS_DIRNAME = "screenshots"
AUDIO_DIRNAME = "audio"
JOBS_DIRNAME = "jobs"
LOGS_DIRNAME = "logs"

# ── Job status values ─────────────────────────────────────────────────
class JobStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# ── Job stage values (ordered) ────────────────────────────────────────
class JobStage:
    CAPTURING_SCREENSHOT = "CAPTURING_SCREENSHOT"
    EXTRACTING_AUDIO = "EXTRACTING_AUDIO"
    TRANSCRIBING = "TRANSCRIBING"
    DETECTING_AI = "DETECTING_AI"
    WRITING_RESULT = "WRITING_RESULT"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Request-level
    INVALID_URL = "ERR_INVALID_URL"
    RESULT_NOT_FOUND = "ERR_RESULT_NOT_FOUND"

    # Stage failures, non-retryable
    SCREENSHOT_FAILED = "ERR_SCREENSHOT_FAILED"
    FFMPEG_TRANSCODE = "ERR_FFMPEG_TRANSCODE"
    API_KEY_MISSING = "ERR_API_KEY_MISSING"
    RESULT_EXISTS = "ERR_RESULT_EXISTS"
    UNEXPECTED = "ERR_UNEXPECTED"

    # Stage failures, worth resubmitting
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    TRANSCRIBE_FAILED = "ERR_TRANSCRIBE_FAILED"
    TRANSCRIBE_TIMEOUT = "ERR_TRANSCRIBE_TIMEOUT"
    NETWORK_TRANSIENT = "ERR_NETWORK_TRANSIENT"

RETRYABLE_ERRORS = {
    ErrorCode.DOWNLOAD_FAILED,
    ErrorCode.TRANSCRIBE_FAILED,
    ErrorCode.TRANSCRIBE_TIMEOUT,
    ErrorCode.NETWORK_TRANSIENT,
}

# ── AI verdict values ─────────────────────────────────────────────────
class Classification:
    HUMAN = "human"
    AI = "ai"
    INSUFFICIENT_TEXT = "insufficient_text"
    ERROR = "error"

class DetectionMethod:
    GPTZERO = "gptzero"
    PATTERN = "pattern-based"
    SKIPPED = "skipped"
    NONE = "none"

class FallbackReason:
    RATE_LIMITED = "rate_limited"
    DETECTOR_ERROR = "detector_error"
    UNEXPECTED_ERROR = "unexpected_error"

# ── Audio pipeline defaults ───────────────────────────────────────────
AUDIO_SAMPLE_RATE = 16000
AUDIO_CHANNELS = 1
AUDIO_CODEC = "pcm_s16le"
AUDIO_FORMAT = "wav"
YTDLP_AUDIO_FORMAT = "bestaudio/best"
DOWNLOAD_TIMEOUT_SEC = 600
TRANSCODE_TIMEOUT_SEC = 600

# ── Screenshot ────────────────────────────────────────────────────────
SCREENSHOT_WINDOW_SIZE = (1280, 720)
SCREENSHOT_PAGE_LOAD_TIMEOUT_SEC = 30
SCREENSHOT_VIDEO_WAIT_SEC = 10
SCREENSHOT_SETTLE_SEC = 3

# ── ElevenLabs ────────────────────────────────────────────────────────
ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
ELEVENLABS_MODEL_ID = "scribe_v1"
ELEVENLABS_LANGUAGE = "en"

# ── GPTZero ───────────────────────────────────────────────────────────
GPTZERO_API_URL = "https://api.gptzero.me/v2/predict/text"
GPTZERO_TIMEOUT_SEC = 30
GPTZERO_DEFAULT_CONFIDENCE = 0.8
PROBE_TEXT = ("This is a test sentence to verify if GPTZero API is "
              "accessible and working properly.")

# ── Detection chain ───────────────────────────────────────────────────
MIN_DETECTION_TEXT_LEN = 10
DETECTION_DELAY_SEC = 0.2

# Pattern heuristic
AI_INDICATOR_PATTERNS = [
    r"as an ai",
    r"i am an artificial intelligence",
    r"i don't have personal",
    r"i cannot feel",
    r"furthermore",
    r"in conclusion",
    r"it's worth noting",
    r"additionally",
    r"moreover",
    r"consequently",
]
INDICATOR_WEIGHT = 0.2
LONG_SENTENCE_CHARS = 80
LONG_SENTENCE_WEIGHT = 0.1
REPETITION_RATIO_THRESHOLD = 2.0
REPETITION_WEIGHT = 0.1
PATTERN_CONFIDENCE = 0.6
AI_THRESHOLD = 0.5

# ── Rate limiting ─────────────────────────────────────────────────────
RATE_LIMIT_WINDOW_SEC = 15 * 60
RATE_LIMIT_MAX_REQUESTS = 10

# ── HTTP server ───────────────────────────────────────────────────────
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# ── Status progress mapping ───────────────────────────────────────────
PROGRESS_PROCESSING = 25
PROGRESS_FAILED = 50
PROGRESS_COMPLETED = 100

# ── URL grammar ───────────────────────────────────────────────────────
YOUTUBE_URL_PATTERNS = [
    r'^https?://(?:www\.)?youtube\.com/watch\?v=([\w-]+)',
    r'^https?://youtu\.be/([\w-]+)',
    r'^https?://(?:www\.)?youtube\.com/embed/([\w-]+)',
]

# Job ids double as file names in the data root
SAFE_JOB_ID_PATTERN = r'^[A-Za-z0-9-]{1,64}$'
