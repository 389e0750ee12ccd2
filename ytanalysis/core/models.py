"""
Data models (plain dataclasses) for the YouTube Analysis Service.
Records are persisted as JSON, so every model knows how to turn itself into a dict.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional


@dataclass
class Word:
    text: str
    start: float = 0.0
    end: float = 0.0
    type: Optional[str] = None
    speaker_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'text': self.text, 'start': self.start, 'end': self.end}
        if self.type is not None:
            data['type'] = self.type
        if self.speaker_id is not None:
            data['speaker_id'] = self.speaker_id
        return data


@dataclass
class AIVerdict:
    ai_probability: float
    classification: str
    confidence: float
    method: str
    raw_scores: Optional[dict] = None
    indicators_found: Optional[int] = None
    fallback_reason: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            'ai_probability': self.ai_probability,
            'classification': self.classification,
            'confidence': self.confidence,
            'method': self.method,
        }
        for key in ('raw_scores', 'indicators_found', 'fallback_reason', 'error'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class TranscriptSegment:
    text: str
    start: float = 0.0
    end: float = 0.0
    speaker: Optional[str] = None
    words: list[Word] = field(default_factory=list)
    ai_detection: Optional[AIVerdict] = None

    def with_verdict(self, verdict: AIVerdict) -> "TranscriptSegment":
        return replace(self, words=list(self.words), ai_detection=verdict)

    def to_dict(self) -> dict:
        data = {
            'text': self.text,
            'start': self.start,
            'end': self.end,
            'speaker': self.speaker,
            'words': [w.to_dict() for w in self.words],
        }
        if self.ai_detection is not None:
            data['ai_detection'] = self.ai_detection.to_dict()
        return data


@dataclass
class Transcript:
    text: str = ""
    language_code: Optional[str] = None
    segments: list[TranscriptSegment] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'text': self.text,
            'language_code': self.language_code,
            'segments': [s.to_dict() for s in self.segments],
        }


@dataclass
class ProcessingSummary:
    total_segments: int = 0
    ai_segments: int = 0
    human_segments: int = 0
    average_ai_probability: float = 0.0

    def to_dict(self) -> dict:
        return {
            'total_segments': self.total_segments,
            'ai_segments': self.ai_segments,
            'human_segments': self.human_segments,
            'average_ai_probability': self.average_ai_probability,
        }


@dataclass
class JobResult:
    """Terminal record of a job. Exactly one of `transcript` / `error` is set."""
    job_id: str
    timestamp: str
    youtube_url: str
    status: str
    completed_at: Optional[str] = None
    screenshot_path: Optional[str] = None
    audio_path: Optional[str] = None
    transcript: Optional[Transcript] = None
    processing_summary: Optional[ProcessingSummary] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    failed_stage: Optional[str] = None
    retryable: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'job_id': self.job_id,
            'timestamp': self.timestamp,
            'youtube_url': self.youtube_url,
            'status': self.status,
        }
        if self.transcript is not None:
            data['screenshot_path'] = self.screenshot_path
            data['audio_path'] = self.audio_path
            data['transcript'] = self.transcript.to_dict()
            data['processing_summary'] = (self.processing_summary or ProcessingSummary()).to_dict()
        else:
            data['error'] = self.error
            data['error_code'] = self.error_code
            data['failed_stage'] = self.failed_stage
            data['retryable'] = bool(self.retryable)
        data['completed_at'] = self.completed_at
        return data


@dataclass
class Submission:
    """What the submitter gets back for an accepted job."""
    job_id: str
    status: str
    message: str

    def to_dict(self) -> dict:
        return {'job_id': self.job_id, 'status': self.status, 'message': self.message}
