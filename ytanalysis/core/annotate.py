"""
Transcript annotation: attach an AI verdict to every segment.
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Iterable, Iterator

from ytanalysis.core.models import AIVerdict, ProcessingSummary, Transcript, TranscriptSegment
from ytanalysis.core.constants import Classification, DetectionMethod, DETECTION_DELAY_SEC

logger = logging.getLogger(__name__)


def annotate(segments: Iterable[TranscriptSegment], chain,
             delay_sec: float = DETECTION_DELAY_SEC,
             sleep: Callable[[float], None] = time.sleep) -> Iterator[TranscriptSegment]:
    """
    Yield a copy of each segment carrying its `ai_detection`, in input order.
    Segments are never dropped: a failed detection yields an `error` verdict.
    Detector calls are sequential, `delay_sec` apart.
    """
    for i, segment in enumerate(segments):
        if i > 0 and delay_sec > 0:
            sleep(delay_sec)

        logger.debug("Processing segment %d: %r", i + 1, segment.text[:50])
        try:
            verdict = chain.detect(segment.text)
        except Exception as e:
            logger.error("Error processing segment %d: %s", i + 1, e, exc_info=True)
            verdict = AIVerdict(
                ai_probability=0.0,
                classification=Classification.ERROR,
                confidence=0.0,
                method=DetectionMethod.NONE,
                error=str(e),
            )
        yield segment.with_verdict(verdict)


def annotate_transcript(transcript: Transcript, chain,
                        delay_sec: float = DETECTION_DELAY_SEC,
                        sleep: Callable[[float], None] = time.sleep) -> Transcript:
    """Annotate every segment; a transcript without segments comes back as is."""
    if not transcript.segments:
        return transcript

    logger.info("Processing %d segments for AI detection...", len(transcript.segments))
    segments = list(annotate(transcript.segments, chain, delay_sec, sleep))
    logger.info("AI detection completed for all segments")
    return replace(transcript, segments=segments)


def summarize(segments: list[TranscriptSegment]) -> ProcessingSummary:
    total = len(segments)
    verdicts = [s.ai_detection for s in segments if s.ai_detection is not None]
    probability_sum = sum(v.ai_probability for v in verdicts)
    return ProcessingSummary(
        total_segments=total,
        ai_segments=sum(1 for v in verdicts if v.classification == Classification.AI),
        human_segments=sum(1 for v in verdicts if v.classification == Classification.HUMAN),
        average_ai_probability=probability_sum / total if total else 0.0,
    )
