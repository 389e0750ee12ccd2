#!/usr/bin/env python3
"""
Unit tests for YouTube Analysis Service core modules.
Tests cover: URL parsing, security utils, error codes, config, result store,
rate limiting, transcript parsing and the subprocess/HTTP capability adapters.
"""

import sys
import os
import json
import subprocess
import tempfile
import threading
from pathlib import Path
from unittest import mock

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

import requests

from ytanalysis.core.constants import ErrorCode, RETRYABLE_ERRORS, RATE_LIMIT_MAX_REQUESTS
from ytanalysis.core.url_parse import extract_video_id, validate_youtube_url, is_youtube_url
from ytanalysis.core.security_utils import is_safe_job_id, safe_child_path, run_subprocess
from ytanalysis.core.error_codes import JobError, is_retryable
from ytanalysis.core.config import AppConfig
from ytanalysis.core.result_store import ResultStore
from ytanalysis.core.rate_limit import SlidingWindowRateLimiter
from ytanalysis.core.transcribe_elevenlabs import (
    parse_transcript, segments_from_words, transcribe_audio,
)
from ytanalysis.core.download_audio import download_audio
from ytanalysis.core.normalize import normalize_audio
from ytanalysis.core.cleanup import cleanup_job_workspace
from ytanalysis.core.diagnostics import get_ytdlp_version, api_status


class TestURLParsing(unittest.TestCase):
    """Test accepted YouTube link shapes."""

    def test_standard_url(self):
        self.assertEqual(
            extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_without_www(self):
        self.assertEqual(
            extract_video_id("https://youtube.com/watch?v=dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_short_url(self):
        self.assertEqual(
            extract_video_id("https://youtu.be/dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_embed_url(self):
        self.assertEqual(
            extract_video_id("https://www.youtube.com/embed/dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_ids_are_word_or_hyphen_runs(self):
        self.assertEqual(extract_video_id("https://youtu.be/a-b_c"), "a-b_c")

    def test_url_with_params(self):
        self.assertEqual(
            extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=120"),
            "dQw4w9WgXcQ",
        )

    def test_invalid_urls(self):
        for url in ("https://example.com", "https://vimeo.com/123456", "not-a-url",
                    "https://youtube.com", "https://www.youtube.com/user/test",
                    "ftp://youtube.com/watch?v=abc", ""):
            self.assertIsNone(extract_video_id(url), url)

    def test_is_youtube_url(self):
        self.assertTrue(is_youtube_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ"))
        self.assertFalse(is_youtube_url("https://www.google.com"))

    def test_validate_raises_on_invalid(self):
        with self.assertRaises(JobError) as ctx:
            validate_youtube_url("https://www.google.com")
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_URL)
        self.assertEqual(ctx.exception.message, "Invalid YouTube URL format")

    def test_validate_raises_on_empty(self):
        for url in (None, "", "   "):
            with self.assertRaises(JobError) as ctx:
                validate_youtube_url(url)
            self.assertEqual(ctx.exception.message, "YouTube URL is required")


class TestSecurityUtils(unittest.TestCase):
    """Test security utilities."""

    def test_uuid_is_safe_job_id(self):
        self.assertTrue(is_safe_job_id("0b6f3a4e-2c1d-4f4e-9a55-8d2f8f1f0c11"))

    def test_unsafe_job_ids(self):
        for job_id in ("", None, "../etc/passwd", "a/b", "x" * 65, "id.json"):
            self.assertFalse(is_safe_job_id(job_id), job_id)

    def test_safe_child_path_normal(self):
        root = Path("/tmp/test_output")
        result = safe_child_path(root, "abc.png")
        self.assertEqual(result, root / "abc.png")

    def test_safe_child_path_traversal(self):
        with self.assertRaises(ValueError):
            safe_child_path(Path("/tmp/test_output"), "../../etc/passwd")

    def test_run_subprocess_rejects_strings(self):
        with self.assertRaises(TypeError):
            run_subprocess("ls -la")


class TestErrorCodes(unittest.TestCase):
    """Test error code handling."""

    def test_retryable_errors(self):
        self.assertTrue(is_retryable(ErrorCode.DOWNLOAD_FAILED))
        self.assertTrue(is_retryable(ErrorCode.TRANSCRIBE_TIMEOUT))
        self.assertTrue(is_retryable(ErrorCode.NETWORK_TRANSIENT))

    def test_non_retryable_errors(self):
        self.assertFalse(is_retryable(ErrorCode.INVALID_URL))
        self.assertFalse(is_retryable(ErrorCode.SCREENSHOT_FAILED))
        self.assertFalse(is_retryable(ErrorCode.FFMPEG_TRANSCODE))
        self.assertNotIn(ErrorCode.UNEXPECTED, RETRYABLE_ERRORS)

    def test_job_error_auto_retryable(self):
        err = JobError(ErrorCode.DOWNLOAD_FAILED, "test")
        self.assertTrue(err.retryable)

        err2 = JobError(ErrorCode.INVALID_URL, "test")
        self.assertFalse(err2.retryable)
        self.assertIn("ERR_INVALID_URL", str(err2))


class TestConfig(unittest.TestCase):
    """Test config layering and validation."""

    def test_defaults(self):
        config = AppConfig(environ={})
        self.assertEqual(config.rate_limit_max_requests, RATE_LIMIT_MAX_REQUESTS)
        self.assertEqual(config.rate_limit_window_sec, 900)
        self.assertIsNone(config.elevenlabs_api_key)
        self.assertTrue(config.cleanup_temp_files)

    def test_env_overrides(self):
        config = AppConfig(environ={
            "RATE_LIMIT_WINDOW_MS": "60000",
            "RATE_LIMIT_MAX_REQUESTS": "3",
            "ELEVENLABS_API_KEY": "secret",
            "STORAGE_PATH": "/tmp/yta",
            "CLEANUP_TEMP_FILES": "false",
            "PORT": "9090",
        })
        self.assertEqual(config.rate_limit_window_sec, 60)
        self.assertEqual(config.rate_limit_max_requests, 3)
        self.assertEqual(config.elevenlabs_api_key, "secret")
        self.assertEqual(config.results_dir, Path("/tmp/yta/results"))
        self.assertFalse(config.cleanup_temp_files)
        self.assertEqual(config.port, 9090)

    def test_invalid_env_ignored(self):
        config = AppConfig(environ={"RATE_LIMIT_MAX_REQUESTS": "lots"})
        self.assertEqual(config.rate_limit_max_requests, RATE_LIMIT_MAX_REQUESTS)

    def test_values_are_clamped(self):
        config = AppConfig(environ={}, overrides={
            "rate_limit_max_requests": 0,
            "detection_delay_sec": 99,
            "port": 70000,
        })
        self.assertEqual(config.rate_limit_max_requests, 1)
        self.assertEqual(config.detection_delay_sec, 10.0)
        self.assertEqual(config.port, 65535)

    def test_json_file_then_env(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text(json.dumps({"rate_limit_max_requests": 5, "log_level": "debug"}))
            config = AppConfig(config_path=path, environ={"RATE_LIMIT_MAX_REQUESTS": "7"})
            self.assertEqual(config.rate_limit_max_requests, 7)
            self.assertEqual(config.log_level, "DEBUG")

    def test_string_booleans_in_json_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text(json.dumps({"cleanup_temp_files": "false"}))
            self.assertFalse(AppConfig(config_path=path, environ={}).cleanup_temp_files)
            path.write_text(json.dumps({"cleanup_temp_files": "yes"}))
            self.assertTrue(AppConfig(config_path=path, environ={}).cleanup_temp_files)

    def test_overrides_accept_string_booleans(self):
        config = AppConfig(environ={}, overrides={"cleanup_temp_files": "0"})
        self.assertFalse(config.cleanup_temp_files)

    def test_as_dict_masks_secrets(self):
        config = AppConfig(environ={"ELEVENLABS_API_KEY": "secret"})
        self.assertEqual(config.as_dict()["elevenlabs_api_key"], "***")


class TestResultStore(unittest.TestCase):
    """Test the write-once result store."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = ResultStore(Path(self.tmpdir.name) / "results")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_read_missing(self):
        self.assertIsNone(self.store.read("abc-123"))

    def test_write_then_read(self):
        self.store.write("abc-123", {"job_id": "abc-123", "status": "completed"})
        self.assertEqual(self.store.read("abc-123")["status"], "completed")

    def test_record_is_never_overwritten(self):
        self.store.write("abc-123", {"status": "completed"})
        with self.assertRaises(JobError) as ctx:
            self.store.write("abc-123", {"status": "failed"})
        self.assertEqual(ctx.exception.code, ErrorCode.RESULT_EXISTS)
        self.assertEqual(self.store.read("abc-123")["status"], "completed")

    def test_no_temp_files_left_behind(self):
        self.store.write("abc-123", {"status": "completed"})
        names = [p.name for p in self.store.results_dir.iterdir()]
        self.assertEqual(names, ["abc-123.json"])

    def test_unsafe_ids(self):
        self.assertIsNone(self.store.read("../../etc/passwd"))
        with self.assertRaises(ValueError):
            self.store.write("../escape", {})


class TestRateLimiter(unittest.TestCase):
    """Test the sliding window limiter."""

    def setUp(self):
        self.now = 1000.0
        self.limiter = SlidingWindowRateLimiter(limit=3, window=60, clock=lambda: self.now)

    def test_cap_per_client(self):
        results = [self.limiter.is_allowed("1.2.3.4") for _ in range(5)]
        self.assertEqual(results, [True, True, True, False, False])
        self.assertTrue(self.limiter.is_allowed("5.6.7.8"))

    def test_window_slides(self):
        for _ in range(3):
            self.limiter.is_allowed("ip")
        self.assertFalse(self.limiter.is_allowed("ip"))
        self.now += 61
        self.assertTrue(self.limiter.is_allowed("ip"))

    def test_remaining_and_retry_after(self):
        self.assertEqual(self.limiter.get_remaining("ip"), 3)
        self.limiter.is_allowed("ip")
        self.now += 10
        self.assertEqual(self.limiter.get_remaining("ip"), 2)
        self.assertEqual(self.limiter.retry_after("ip"), 50)

    def test_reset(self):
        for _ in range(3):
            self.limiter.is_allowed("ip")
        self.limiter.reset_client("ip")
        self.assertTrue(self.limiter.is_allowed("ip"))

    def test_concurrent_requests_respect_cap(self):
        limiter = SlidingWindowRateLimiter(limit=10, window=60)
        allowed = []

        def hit():
            allowed.append(limiter.is_allowed("ip"))

        threads = [threading.Thread(target=hit) for _ in range(25)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(sum(allowed), 10)


class TestTranscriptParsing(unittest.TestCase):
    """Test ElevenLabs response -> segments."""

    WORDS = [
        {"text": "Hello", "type": "word", "start": 0.0, "end": 0.4, "speaker_id": "speaker_0"},
        {"text": " ", "type": "spacing", "start": 0.4, "end": 0.5, "speaker_id": "speaker_0"},
        {"text": "there.", "type": "word", "start": 0.5, "end": 0.9, "speaker_id": "speaker_0"},
        {"text": " ", "type": "spacing", "start": 0.9, "end": 1.0, "speaker_id": "speaker_0"},
        {"text": "(laughs)", "type": "audio_event", "start": 1.0, "end": 1.5, "speaker_id": "speaker_0"},
        {"text": "How", "type": "word", "start": 1.5, "end": 1.7, "speaker_id": "speaker_0"},
        {"text": " ", "type": "spacing", "start": 1.7, "end": 1.8, "speaker_id": "speaker_0"},
        {"text": "are", "type": "word", "start": 1.8, "end": 2.0, "speaker_id": "speaker_0"},
        {"text": "Fine", "type": "word", "start": 2.2, "end": 2.5, "speaker_id": "speaker_1"},
        {"text": " ", "type": "spacing", "start": 2.5, "end": 2.6, "speaker_id": "speaker_1"},
        {"text": "thanks!", "type": "word", "start": 2.6, "end": 3.0, "speaker_id": "speaker_1"},
    ]

    def test_segments_split_on_punctuation_and_speaker(self):
        segments = segments_from_words(self.WORDS)
        self.assertEqual([s.text for s in segments], ["Hello there.", "How are", "Fine thanks!"])
        self.assertEqual([s.speaker for s in segments], ["speaker_0", "speaker_0", "speaker_1"])
        self.assertEqual(segments[0].start, 0.0)
        self.assertEqual(segments[0].end, 0.9)
        self.assertEqual([w.text for w in segments[1].words], ["How", "are"])

    def test_words_without_spacing_tokens(self):
        segments = segments_from_words([
            {"text": "one", "start": 0, "end": 1},
            {"text": "two.", "start": 1, "end": 2},
        ])
        self.assertEqual(segments[0].text, "one two.")

    def test_parse_transcript(self):
        transcript = parse_transcript({"language_code": "en", "text": "Hello there.", "words": self.WORDS})
        self.assertEqual(transcript.language_code, "en")
        self.assertEqual(len(transcript.segments), 3)

    def test_vendor_segments_are_used_as_is(self):
        transcript = parse_transcript({
            "text": "a b",
            "segments": [{"text": " a b ", "start": 0, "end": 1, "speaker": "s1",
                          "words": [{"text": "a", "start": 0, "end": 0.5}]}],
        })
        self.assertEqual(len(transcript.segments), 1)
        self.assertEqual(transcript.segments[0].text, "a b")
        self.assertEqual(transcript.segments[0].speaker, "s1")

    def test_empty_response(self):
        transcript = parse_transcript({"text": ""})
        self.assertEqual(transcript.segments, [])
        self.assertEqual(transcript.text, "")


class TestTranscribeAdapter(unittest.TestCase):
    """Test the ElevenLabs HTTP call with requests mocked out."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.audio = Path(self.tmpdir.name) / "a.wav"
        self.audio.write_bytes(b"RIFF....")

    def tearDown(self):
        self.tmpdir.cleanup()

    def _response(self, status, body=None):
        resp = mock.Mock(status_code=status, text=json.dumps(body or {}))
        resp.json.return_value = body
        return resp

    def test_missing_key(self):
        with self.assertRaises(JobError) as ctx:
            transcribe_audio(self.audio, None)
        self.assertEqual(ctx.exception.code, ErrorCode.API_KEY_MISSING)

    @mock.patch("ytanalysis.core.transcribe_elevenlabs.requests.post")
    def test_success(self, post):
        post.return_value = self._response(200, {"text": "Hi.", "words": [
            {"text": "Hi.", "type": "word", "start": 0, "end": 0.3}]})
        transcript = transcribe_audio(self.audio, "key")
        self.assertEqual(len(transcript.segments), 1)
        _, kwargs = post.call_args
        self.assertEqual(kwargs["headers"], {"xi-api-key": "key"})
        self.assertEqual(kwargs["data"]["timestamps_granularity"], "word")
        self.assertEqual([p.name for p in self.audio.parent.iterdir()], ["a.wav"])

    @mock.patch("ytanalysis.core.transcribe_elevenlabs.requests.post")
    def test_rate_limited_fails_without_retry(self, post):
        post.return_value = self._response(429)
        with self.assertRaises(JobError) as ctx:
            transcribe_audio(self.audio, "key")
        self.assertEqual(ctx.exception.code, ErrorCode.NETWORK_TRANSIENT)
        self.assertEqual(post.call_count, 1)

    @mock.patch("ytanalysis.core.transcribe_elevenlabs.requests.post")
    def test_http_error(self, post):
        post.return_value = self._response(500, {"detail": "boom"})
        with self.assertRaises(JobError) as ctx:
            transcribe_audio(self.audio, "key")
        self.assertEqual(ctx.exception.code, ErrorCode.TRANSCRIBE_FAILED)
        self.assertIn("500", ctx.exception.message)

    @mock.patch("ytanalysis.core.transcribe_elevenlabs.requests.post")
    def test_timeout(self, post):
        post.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(JobError) as ctx:
            transcribe_audio(self.audio, "key")
        self.assertEqual(ctx.exception.code, ErrorCode.TRANSCRIBE_TIMEOUT)


class TestMediaAdapters(unittest.TestCase):
    """Test yt-dlp / ffmpeg wrappers with the subprocess layer mocked out."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_download_audio(self):
        out_dir = self.root / "source"

        def fake_run(args, timeout):
            (out_dir / "source.webm").write_bytes(b"data")
            return subprocess.CompletedProcess(args, 0, "", "")

        with mock.patch("ytanalysis.core.download_audio.run_subprocess_capture", side_effect=fake_run) as run:
            path = download_audio("https://youtu.be/abc", out_dir)
        self.assertEqual(path.name, "source.webm")
        args = run.call_args[0][0]
        self.assertEqual(args[0], "yt-dlp")
        self.assertEqual(args[-1], "https://youtu.be/abc")

    def test_download_failure(self):
        result = subprocess.CompletedProcess([], 1, "", "ERROR: Video unavailable")
        with mock.patch("ytanalysis.core.download_audio.run_subprocess_capture", return_value=result):
            with self.assertRaises(JobError) as ctx:
                download_audio("https://youtu.be/abc", self.root / "source")
        self.assertEqual(ctx.exception.code, ErrorCode.DOWNLOAD_FAILED)
        self.assertIn("Video unavailable", ctx.exception.message)

    def test_download_tool_missing(self):
        with mock.patch("ytanalysis.core.download_audio.run_subprocess_capture",
                        side_effect=FileNotFoundError("yt-dlp")):
            with self.assertRaises(JobError) as ctx:
                download_audio("https://youtu.be/abc", self.root / "source")
        self.assertEqual(ctx.exception.code, ErrorCode.DOWNLOAD_FAILED)

    def test_normalize_audio_args(self):
        out = self.root / "audio" / "job.wav"

        def fake_run(args, timeout):
            out.write_bytes(b"RIFF")
            return subprocess.CompletedProcess(args, 0, "", "")

        with mock.patch("ytanalysis.core.normalize.run_subprocess_capture", side_effect=fake_run) as run:
            self.assertEqual(normalize_audio(self.root / "in.webm", out), out)
        args = run.call_args[0][0]
        self.assertEqual(args[args.index("-ar") + 1], "16000")
        self.assertEqual(args[args.index("-ac") + 1], "1")

    def test_normalize_failure(self):
        result = subprocess.CompletedProcess([], 1, "", "Invalid data found")
        with mock.patch("ytanalysis.core.normalize.run_subprocess_capture", return_value=result):
            with self.assertRaises(JobError) as ctx:
                normalize_audio(self.root / "in.webm", self.root / "out.wav")
        self.assertEqual(ctx.exception.code, ErrorCode.FFMPEG_TRANSCODE)

    def test_cleanup_workspace(self):
        workspace = self.root / "jobs" / "abc"
        (workspace / "source").mkdir(parents=True)
        (workspace / "source" / "source.webm").write_bytes(b"x")
        self.assertFalse(cleanup_job_workspace(workspace, enabled=False))
        self.assertTrue(workspace.exists())
        self.assertTrue(cleanup_job_workspace(workspace))
        self.assertFalse(workspace.exists())


class TestDiagnostics(unittest.TestCase):

    def test_tool_not_installed(self):
        with mock.patch("ytanalysis.core.diagnostics.run_subprocess_capture",
                        side_effect=FileNotFoundError):
            self.assertEqual(get_ytdlp_version(), "Not installed")

    def test_api_status_hides_keys(self):
        status = api_status(AppConfig(environ={"ELEVENLABS_API_KEY": "secret"}))
        self.assertEqual(status["elevenlabs"], "configured")
        self.assertNotIn("secret", json.dumps(status))


if __name__ == "__main__":
    unittest.main()
