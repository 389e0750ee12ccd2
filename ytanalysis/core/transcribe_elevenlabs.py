"""
ElevenLabs Speech-to-Text integration.
Uploads the WAV file, asks for word-level timestamps and speaker diarization,
and turns the flat word list into sentence segments.
"""

import logging
import re
import requests
from pathlib import Path

from ytanalysis.core.error_codes import JobError
from ytanalysis.core.models import Transcript, TranscriptSegment, Word
from ytanalysis.core.constants import (
    ErrorCode, ELEVENLABS_API_BASE, ELEVENLABS_MODEL_ID, ELEVENLABS_LANGUAGE,
)

logger = logging.getLogger(__name__)

ELEVENLABS_STT_URL = f"{ELEVENLABS_API_BASE}/speech-to-text"

_SENTENCE_END_RE = re.compile(r'[.!?]["\')\]]*$')


def transcribe_audio(audio_path: Path, api_key: str | None,
                     model_id: str = ELEVENLABS_MODEL_ID,
                     language_code: str = ELEVENLABS_LANGUAGE) -> Transcript:
    """
    Transcribe an audio file with ElevenLabs Scribe.
    Makes a single request: a rate-limit answer fails the stage like any other error.
    Returns the parsed Transcript.
    """
    if not api_key:
        raise JobError(ErrorCode.API_KEY_MISSING, "ELEVENLABS_API_KEY is not configured")

    headers = {"xi-api-key": api_key}
    data = {
        "model_id": model_id,
        "language_code": language_code,
        "diarize": "true",
        "timestamps_granularity": "word",
    }

    file_size = audio_path.stat().st_size
    # Adaptive timeout: ~1 min per 10MB, minimum 120s
    timeout_sec = max(120, int(file_size / (10 * 1024 * 1024) * 60) + 60)

    logger.info("Starting ElevenLabs transcription of %s (%d bytes)", audio_path.name, file_size)
    try:
        with open(audio_path, 'rb') as f:
            resp = requests.post(
                ELEVENLABS_STT_URL,
                headers=headers,
                data=data,
                files={"file": (audio_path.name, f, "audio/wav")},
                timeout=timeout_sec,
            )
    except requests.exceptions.Timeout:
        raise JobError(ErrorCode.TRANSCRIBE_TIMEOUT, "Transcription failed: request timed out")
    except requests.exceptions.ConnectionError:
        raise JobError(ErrorCode.NETWORK_TRANSIENT,
                       "Transcription failed: network error connecting to ElevenLabs")
    except requests.exceptions.RequestException as e:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, f"Transcription failed: {e}")

    if resp.status_code == 429:
        raise JobError(ErrorCode.NETWORK_TRANSIENT, "Transcription failed: ElevenLabs rate limited (429)")

    if resp.status_code != 200:
        # Sanitize error message (never log API key)
        error_body = resp.text[:300] if resp.text else "No response body"
        raise JobError(ErrorCode.TRANSCRIBE_FAILED,
                       f"Transcription failed: ElevenLabs returned {resp.status_code}: {error_body}")

    try:
        result = resp.json()
    except ValueError:
        raise JobError(ErrorCode.TRANSCRIBE_FAILED,
                       "Transcription failed: could not parse ElevenLabs response JSON")

    transcript = parse_transcript(result)
    logger.info("ElevenLabs transcription completed: %d segments", len(transcript.segments))
    return transcript


def parse_transcript(response: dict) -> Transcript:
    """
    Build a Transcript from an ElevenLabs response.
    Uses vendor-provided segments when present, otherwise groups words into sentences.
    """
    if not isinstance(response, dict):
        raise JobError(ErrorCode.TRANSCRIBE_FAILED, "Unexpected transcription response shape")

    text = (response.get('text') or "").strip()
    language_code = response.get('language_code')

    raw_segments = response.get('segments')
    if isinstance(raw_segments, list) and raw_segments:
        segments = [_segment_from_dict(s) for s in raw_segments if isinstance(s, dict)]
    else:
        segments = segments_from_words(response.get('words') or [])

    if not text:
        text = ' '.join(s.text for s in segments)

    return Transcript(text=text, language_code=language_code, segments=segments)


def _word_from_dict(raw: dict) -> Word:
    return Word(
        text=str(raw.get('text', '')),
        start=float(raw.get('start') or 0.0),
        end=float(raw.get('end') or 0.0),
        type=raw.get('type'),
        speaker_id=raw.get('speaker_id'),
    )


def _segment_from_dict(raw: dict) -> TranscriptSegment:
    words = [_word_from_dict(w) for w in raw.get('words') or [] if isinstance(w, dict)]
    return TranscriptSegment(
        text=str(raw.get('text', '')).strip(),
        start=float(raw.get('start') or 0.0),
        end=float(raw.get('end') or 0.0),
        speaker=raw.get('speaker') or raw.get('speaker_id'),
        words=words,
    )


def segments_from_words(raw_words: list[dict]) -> list[TranscriptSegment]:
    """
    Group a flat word list into segments. A segment closes after a word
    ending in sentence punctuation, or when the speaker changes.
    Spacing tokens only contribute to segment text; audio events are dropped.
    """
    segments: list[TranscriptSegment] = []
    parts: list[str] = []
    words: list[Word] = []
    speaker = None

    def flush():
        if words:
            segments.append(TranscriptSegment(
                text=''.join(parts).strip(),
                start=words[0].start,
                end=words[-1].end,
                speaker=speaker,
                words=list(words),
            ))
        parts.clear()
        words.clear()

    for raw in raw_words:
        if not isinstance(raw, dict):
            continue
        kind = raw.get('type', 'word')
        if kind == 'audio_event':
            continue
        if kind == 'spacing':
            if words:
                parts.append(str(raw.get('text', ' ')))
            continue

        word = _word_from_dict(raw)
        if words and word.speaker_id != speaker:
            flush()
        if not words:
            speaker = word.speaker_id
        elif parts and not parts[-1].isspace():
            # vendors that omit spacing tokens
            parts.append(' ')
        parts.append(word.text)
        words.append(word)

        if _SENTENCE_END_RE.search(word.text):
            flush()

    flush()
    return segments
