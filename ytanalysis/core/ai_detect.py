"""
AI-authorship detection.

Detectors are tried in priority order by a DetectionChain:
  1. GPTZeroDetector: hosted API, may fail or rate-limit
  2. PatternDetector: local heuristic, never fails

The chain never raises. A fall-through is reported on the verdict
(`method` + `fallback_reason`), not as an error.
"""

import logging
import re
import requests

from ytanalysis.core.error_codes import DetectionError, RateLimitedError
from ytanalysis.core.models import AIVerdict
from ytanalysis.core.constants import (
    Classification, DetectionMethod, FallbackReason,
    GPTZERO_API_URL, GPTZERO_TIMEOUT_SEC, GPTZERO_DEFAULT_CONFIDENCE, USER_AGENT,
    MIN_DETECTION_TEXT_LEN, PROBE_TEXT,
    AI_INDICATOR_PATTERNS, INDICATOR_WEIGHT,
    LONG_SENTENCE_CHARS, LONG_SENTENCE_WEIGHT,
    REPETITION_RATIO_THRESHOLD, REPETITION_WEIGHT,
    PATTERN_CONFIDENCE, AI_THRESHOLD,
)

logger = logging.getLogger(__name__)


# ── Hosted detector ───────────────────────────────────────────────────

class GPTZeroDetector:
    """GPTZero text prediction endpoint."""

    method = DetectionMethod.GPTZERO

    def __init__(self, api_url: str = GPTZERO_API_URL, api_key: str | None = None,
                 timeout: float = GPTZERO_TIMEOUT_SEC, session: requests.Session | None = None):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def detect(self, text: str) -> AIVerdict:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key

        try:
            resp = self.session.post(
                self.api_url,
                json={"document": text, "language": "en"},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise DetectionError(f"GPTZero request failed: {type(e).__name__}") from e

        if resp.status_code == 429:
            raise RateLimitedError("GPTZero rate limit reached (429)")
        if resp.status_code != 200:
            raise DetectionError(f"GPTZero returned {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise DetectionError("GPTZero returned invalid JSON") from e

        return self._parse(payload)

    @staticmethod
    def _parse(payload: dict) -> AIVerdict:
        documents = payload.get('documents') if isinstance(payload, dict) else None
        if not documents or not isinstance(documents[0], dict):
            raise DetectionError("GPTZero response has no documents")
        doc = documents[0]

        avg_prob = _as_float(doc.get('average_generated_prob'), 0.0)
        completely = _as_float(doc.get('completely_generated_prob'), 0.0)
        confidence = _as_float(doc.get('confidence'), GPTZERO_DEFAULT_CONFIDENCE)

        return AIVerdict(
            ai_probability=min(max(avg_prob, 0.0), 1.0),
            classification=Classification.AI if completely > AI_THRESHOLD else Classification.HUMAN,
            confidence=confidence,
            method=DetectionMethod.GPTZERO,
            raw_scores={
                'avg_generated_prob': doc.get('average_generated_prob'),
                'completely_generated_prob': doc.get('completely_generated_prob'),
                'overall_burstiness': doc.get('overall_burstiness'),
                'perplexity': doc.get('perplexity'),
            },
        )


def _as_float(value, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ── Local heuristic ───────────────────────────────────────────────────

_INDICATORS = [re.compile(p, re.IGNORECASE) for p in AI_INDICATOR_PATTERNS]
_SENTENCE_SPLIT_RE = re.compile(r'[.!?]+')


class PatternDetector:
    """
    Phrase/structure heuristic: a capped weighted sum over indicator phrases,
    with extra weight for long sentences and for heavy word repetition.
    """

    method = DetectionMethod.PATTERN

    def detect(self, text: str) -> AIVerdict:
        score = 0.0

        indicators_found = sum(1 for pattern in _INDICATORS if pattern.search(text))
        score += indicators_found * INDICATOR_WEIGHT

        sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
        if sentences:
            avg_sentence_len = sum(len(s) for s in sentences) / len(sentences)
            if avg_sentence_len > LONG_SENTENCE_CHARS:
                score += LONG_SENTENCE_WEIGHT

        words = text.lower().split()
        if words:
            repetition_ratio = len(words) / len(set(words))
            if repetition_ratio > REPETITION_RATIO_THRESHOLD:
                score += REPETITION_WEIGHT

        probability = min(score, 1.0)
        return AIVerdict(
            ai_probability=round(probability, 4),
            classification=Classification.AI if probability > AI_THRESHOLD else Classification.HUMAN,
            confidence=PATTERN_CONFIDENCE,
            method=DetectionMethod.PATTERN,
            indicators_found=indicators_found,
        )


# ── Chain ─────────────────────────────────────────────────────────────

def fallback_reason(exc: BaseException) -> str:
    """Classify why a detector was skipped in favour of the next one."""
    if isinstance(exc, RateLimitedError):
        return FallbackReason.RATE_LIMITED
    if isinstance(exc, DetectionError):
        return FallbackReason.DETECTOR_ERROR
    return FallbackReason.UNEXPECTED_ERROR


class DetectionChain:
    """Ordered list of detectors, first verdict wins."""

    def __init__(self, detectors: list, min_text_length: int = MIN_DETECTION_TEXT_LEN):
        if not detectors:
            raise ValueError("DetectionChain needs at least one detector")
        self.detectors = list(detectors)
        self.min_text_length = min_text_length

    @property
    def primary(self):
        return self.detectors[0]

    def detect(self, text: str | None) -> AIVerdict:
        text = text or ""
        if len(text.strip()) < self.min_text_length:
            return AIVerdict(
                ai_probability=0.0,
                classification=Classification.INSUFFICIENT_TEXT,
                confidence=0.0,
                method=DetectionMethod.SKIPPED,
            )

        reason = None
        last_error = None
        for detector in self.detectors:
            name = getattr(detector, 'method', type(detector).__name__)
            try:
                verdict = detector.detect(text)
            except Exception as e:
                reason = fallback_reason(e)
                last_error = e
                if reason == FallbackReason.UNEXPECTED_ERROR:
                    logger.error("Detector %s crashed, falling back", name, exc_info=True)
                else:
                    logger.warning("Detector %s unavailable (%s): %s, falling back", name, reason, e)
                continue

            if reason is not None:
                verdict.fallback_reason = reason
            return verdict

        logger.error("All AI detection methods failed: %s", last_error)
        return AIVerdict(
            ai_probability=0.0,
            classification=Classification.ERROR,
            confidence=0.0,
            method=DetectionMethod.NONE,
            fallback_reason=reason,
            error=str(last_error),
        )


def build_default_chain(api_url: str = GPTZERO_API_URL, api_key: str | None = None,
                        min_text_length: int = MIN_DETECTION_TEXT_LEN) -> DetectionChain:
    return DetectionChain(
        [GPTZeroDetector(api_url=api_url, api_key=api_key), PatternDetector()],
        min_text_length=min_text_length,
    )


def probe_detector(detector) -> bool:
    """One call on a fixed sentence; True if the detector answered."""
    try:
        verdict = detector.detect(PROBE_TEXT)
    except DetectionError as e:
        logger.info("Detector probe failed: %s", e)
        return False
    logger.info("Detector probe ok: %s", verdict.to_dict())
    return True
