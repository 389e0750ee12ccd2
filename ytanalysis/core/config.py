"""
Application configuration manager.
Defaults, overlaid by an optional JSON file, overlaid by environment variables.
"""

import json
import logging
import os
from pathlib import Path

from ytanalysis.core.constants import (
    DEFAULT_DATA_ROOT, DEFAULT_HOST, DEFAULT_PORT,
    RATE_LIMIT_WINDOW_SEC, RATE_LIMIT_MAX_REQUESTS,
    DETECTION_DELAY_SEC, MIN_DETECTION_TEXT_LEN,
    ELEVENLABS_MODEL_ID, ELEVENLABS_LANGUAGE, GPTZERO_API_URL,
    RESULTS_DIRNAME, SCREENSHOTS_DIRNAME, AUDIO_DIRNAME, JOBS_DIRNAME, LOGS_DIRNAME,
)

# Validation bounds
_WINDOW_MIN = 1
_WINDOW_MAX = 24 * 3600
_MAX_REQUESTS_MIN = 1
_MAX_REQUESTS_MAX = 10000
_DELAY_MIN = 0.0
_DELAY_MAX = 10.0
_MIN_TEXT_MIN = 1
_MIN_TEXT_MAX = 1000
_PORT_MIN = 1
_PORT_MAX = 65535

CONFIG_PATH_ENV = "YTA_CONFIG_PATH"

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'host': DEFAULT_HOST,
    'port': DEFAULT_PORT,
    'data_root': str(DEFAULT_DATA_ROOT),
    'log_level': "INFO",
    'elevenlabs_api_key': None,
    'elevenlabs_model_id': ELEVENLABS_MODEL_ID,
    'elevenlabs_language': ELEVENLABS_LANGUAGE,
    'gptzero_api_key': None,
    'gptzero_api_url': GPTZERO_API_URL,
    'rate_limit_window_sec': RATE_LIMIT_WINDOW_SEC,
    'rate_limit_max_requests': RATE_LIMIT_MAX_REQUESTS,
    'detection_delay_sec': DETECTION_DELAY_SEC,
    'min_detection_text_len': MIN_DETECTION_TEXT_LEN,
    'cleanup_temp_files': True,
}


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


# env var -> (config key, converter)
_ENV_OVERRIDES = {
    'HOST': ('host', str),
    'PORT': ('port', int),
    'STORAGE_PATH': ('data_root', str),
    'LOG_LEVEL': ('log_level', str),
    'ELEVENLABS_API_KEY': ('elevenlabs_api_key', str),
    'ELEVENLABS_MODEL_ID': ('elevenlabs_model_id', str),
    'GPTZERO_API_KEY': ('gptzero_api_key', str),
    'GPTZERO_API_URL': ('gptzero_api_url', str),
    'RATE_LIMIT_WINDOW_MS': ('rate_limit_window_sec', lambda v: float(v) / 1000),
    'RATE_LIMIT_MAX_REQUESTS': ('rate_limit_max_requests', int),
    'DETECTION_DELAY_MS': ('detection_delay_sec', lambda v: float(v) / 1000),
    'CLEANUP_TEMP_FILES': ('cleanup_temp_files', _parse_bool),
}


class AppConfig:
    """Runtime configuration for the service."""

    def __init__(self, config_path: Path | None = None,
                 environ: dict | None = None,
                 overrides: dict | None = None):
        self.environ = os.environ if environ is None else environ
        if config_path is None and self.environ.get(CONFIG_PATH_ENV):
            config_path = Path(self.environ[CONFIG_PATH_ENV])
        self.path = config_path
        self._data: dict = {}
        self.load()
        for key, value in (overrides or {}).items():
            self.set(key, value)

    def load(self):
        """Load defaults, then the JSON file, then environment overrides."""
        self._data = dict(_DEFAULTS)
        if self.path and self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    self._data[key] = self._validate(key, value)
            except Exception as e:
                logger.warning("Failed to load config %s: %s", self.path, e)

        for env_name, (key, convert) in _ENV_OVERRIDES.items():
            raw = self.environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid %s=%r", env_name, raw)
                continue
            self._data[key] = self._validate(key, value)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'rate_limit_window_sec':
            return self._clamp(key, value, float, _WINDOW_MIN, _WINDOW_MAX)

        if key == 'rate_limit_max_requests':
            return self._clamp(key, value, int, _MAX_REQUESTS_MIN, _MAX_REQUESTS_MAX)

        if key == 'detection_delay_sec':
            return self._clamp(key, value, float, _DELAY_MIN, _DELAY_MAX)

        if key == 'min_detection_text_len':
            return self._clamp(key, value, int, _MIN_TEXT_MIN, _MIN_TEXT_MAX)

        if key == 'port':
            return self._clamp(key, value, int, _PORT_MIN, _PORT_MAX)

        if key == 'log_level':
            level = str(value).upper()
            if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
                logger.warning("Invalid log_level %r, using INFO", value)
                return "INFO"
            return level

        if key == 'cleanup_temp_files':
            return _parse_bool(value)

        return value

    @staticmethod
    def _clamp(key: str, value, kind, low, high):
        try:
            value = kind(value)
        except (TypeError, ValueError):
            logger.warning("Invalid %s %r, using default", key, value)
            return _DEFAULTS[key]
        return max(low, min(high, value))

    def as_dict(self) -> dict:
        """Config snapshot with secrets masked."""
        data = dict(self._data)
        for key in ('elevenlabs_api_key', 'gptzero_api_key'):
            if data.get(key):
                data[key] = "***"
        return data

    # ── Typed accessors ───────────────────────────────────────────────

    @property
    def host(self) -> str:
        return self._data['host']

    @property
    def port(self) -> int:
        return self._data['port']

    @property
    def log_level(self) -> str:
        return self._data['log_level']

    @property
    def data_root(self) -> Path:
        return Path(self._data['data_root'])

    @property
    def results_dir(self) -> Path:
        return self.data_root / RESULTS_DIRNAME

    @property
    def screenshots_dir(self) -> Path:
        return self.data_root / SCREENSHOTS_DIRNAME

    @property
    def audio_dir(self) -> Path:
        return self.data_root / AUDIO_DIRNAME

    @property
    def jobs_dir(self) -> Path:
        return self.data_root / JOBS_DIRNAME

    @property
    def logs_dir(self) -> Path:
        return self.data_root / LOGS_DIRNAME

    @property
    def elevenlabs_api_key(self) -> str | None:
        return self._data.get('elevenlabs_api_key')

    @property
    def elevenlabs_model_id(self) -> str:
        return self._data['elevenlabs_model_id']

    @property
    def elevenlabs_language(self) -> str:
        return self._data['elevenlabs_language']

    @property
    def gptzero_api_key(self) -> str | None:
        return self._data.get('gptzero_api_key')

    @property
    def gptzero_api_url(self) -> str:
        return self._data['gptzero_api_url']

    @property
    def rate_limit_window_sec(self) -> float:
        return self._data['rate_limit_window_sec']

    @property
    def rate_limit_max_requests(self) -> int:
        return self._data['rate_limit_max_requests']

    @property
    def detection_delay_sec(self) -> float:
        return self._data['detection_delay_sec']

    @property
    def min_detection_text_len(self) -> int:
        return self._data['min_detection_text_len']

    @property
    def cleanup_temp_files(self) -> bool:
        return self._data['cleanup_temp_files']
