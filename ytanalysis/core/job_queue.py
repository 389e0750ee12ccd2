"""
Job orchestrator.
Each submitted URL runs through the fixed pipeline on its own background thread:
screenshot -> audio -> transcript -> AI detection -> terminal record.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from ytanalysis.core.constants import (
    JobStatus, JobStage, ErrorCode,
    SCREENSHOTS_DIRNAME, AUDIO_DIRNAME, AUDIO_FORMAT,
    PROGRESS_PROCESSING, PROGRESS_FAILED, PROGRESS_COMPLETED,
)
from ytanalysis.core.config import AppConfig
from ytanalysis.core.error_codes import JobError
from ytanalysis.core.models import JobResult, Submission
from ytanalysis.core.pipeline import PipelineAdapters
from ytanalysis.core.result_store import ResultStore
from ytanalysis.core.url_parse import validate_youtube_url
from ytanalysis.core.annotate import annotate_transcript, summarize

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _StageTracker:
    """Remembers which stage a single run is in, for the failure record."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        self.stage = JobStage.CAPTURING_SCREENSHOT

    def enter(self, stage: str):
        self.stage = stage
        logger.info("Job %s: %s", self.job_id, stage)


class JobOrchestrator:
    """
    Owns job identity and the background pipeline run.
    Terminal state lives only in the ResultStore; "no record" means processing.
    """

    def __init__(self, config: AppConfig, store: ResultStore, adapters: PipelineAdapters):
        self.config = config
        self.store = store
        self.adapters = adapters
        self._threads: dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

    # ── Public API ────────────────────────────────────────────────────

    def submit(self, url: str | None) -> Submission:
        """
        Validate the URL and start the pipeline in the background.
        Raises JobError(INVALID_URL) before any work is scheduled.
        """
        validate_youtube_url(url)
        url = url.strip()

        job_id = str(uuid.uuid4())
        timestamp = _now()

        thread = threading.Thread(
            target=self._run,
            args=(job_id, url, timestamp),
            name=f"job-{job_id[:8]}",
            daemon=True,
        )
        with self._threads_lock:
            self._prune_finished()
            self._threads[job_id] = thread
        thread.start()

        logger.info("Accepted job %s for %s", job_id, url)
        return Submission(
            job_id=job_id,
            status=JobStatus.PROCESSING,
            message=f"Analysis started. Use GET /result/{job_id} to check results.",
        )

    def get_status(self, job_id: str) -> dict:
        """Never fails: a job without a terminal record is reported as processing."""
        record = self.store.read(job_id)
        if record is None:
            return {
                'job_id': job_id,
                'status': JobStatus.PROCESSING,
                'message': "Analysis in progress...",
                'progress': PROGRESS_PROCESSING,
            }
        status = record.get('status')
        return {
            'job_id': job_id,
            'status': status,
            'timestamp': record.get('timestamp'),
            'progress': PROGRESS_COMPLETED if status == JobStatus.COMPLETED else PROGRESS_FAILED,
        }

    def get_result(self, job_id: str) -> dict:
        """Return the terminal record verbatim, or raise JobError(RESULT_NOT_FOUND)."""
        record = self.store.read(job_id)
        if record is None:
            raise JobError(ErrorCode.RESULT_NOT_FOUND, "Result not found")
        return record

    def wait(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """Join a job started by this process. True if it is no longer running."""
        with self._threads_lock:
            thread = self._threads.get(job_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def active_jobs(self) -> int:
        with self._threads_lock:
            self._prune_finished()
            return len(self._threads)

    def _prune_finished(self):
        for job_id in [j for j, t in self._threads.items() if not t.is_alive() and t.ident]:
            del self._threads[job_id]

    # ── Job processing pipeline ───────────────────────────────────────

    def _run(self, job_id: str, url: str, timestamp: str):
        """Run every stage in order; the first failure becomes the terminal record."""
        tracker = _StageTracker(job_id)
        try:
            logger.info("Starting analysis for job %s", job_id)
            record = self._run_stages(job_id, url, timestamp, tracker.enter)
        except JobError as e:
            logger.error("Analysis failed for job %s at %s: %s", job_id, tracker.stage, e)
            record = self._failure(job_id, url, timestamp, tracker.stage,
                                   e.code, e.message, e.retryable)
        except Exception as e:
            logger.error("Unexpected error processing job %s: %s", job_id, e, exc_info=True)
            record = self._failure(job_id, url, timestamp, tracker.stage, ErrorCode.UNEXPECTED,
                                   str(e)[:2000] or type(e).__name__, False)

        if not self._persist(job_id, record):
            return

        if record.status == JobStatus.COMPLETED:
            summary = record.processing_summary
            logger.info("Analysis completed for job %s: %d segments, %d ai, %d human, avg %.1f%%",
                        job_id, summary.total_segments, summary.ai_segments,
                        summary.human_segments, summary.average_ai_probability * 100)

    def _persist(self, job_id: str, record: JobResult) -> bool:
        """
        Write the terminal record. If that fails, try once more with a small
        failed record so the job does not look like it is still processing.
        """
        try:
            self.store.write(job_id, record.to_dict())
            return True
        except JobError as e:
            if e.code == ErrorCode.RESULT_EXISTS:
                logger.error("Result for job %s was already written", job_id)
                return False
            error = e
        except Exception as e:
            error = e
        logger.error("Could not persist result for job %s: %s", job_id, error, exc_info=error)

        fallback = self._failure(job_id, record.youtube_url, record.timestamp,
                                 JobStage.WRITING_RESULT, ErrorCode.UNEXPECTED,
                                 f"Could not persist result: {error}"[:2000], False)
        try:
            self.store.write(job_id, fallback.to_dict())
        except Exception as e:
            logger.error("Could not persist failure record for job %s: %s", job_id, e)
        return False

    def _run_stages(self, job_id: str, url: str, timestamp: str, enter) -> JobResult:
        adapters = self.adapters
        screenshot_name = f"{job_id}.png"
        audio_name = f"{job_id}.{AUDIO_FORMAT}"

        enter(JobStage.CAPTURING_SCREENSHOT)
        adapters.capture_screenshot(url, self.config.screenshots_dir / screenshot_name)

        enter(JobStage.EXTRACTING_AUDIO)
        audio_path = adapters.extract_audio(url, self.config.audio_dir / audio_name,
                                            self.config.jobs_dir / job_id)

        enter(JobStage.TRANSCRIBING)
        transcript = adapters.transcribe(audio_path)

        enter(JobStage.DETECTING_AI)
        annotated = annotate_transcript(transcript, adapters.detector,
                                        delay_sec=adapters.detection_delay_sec)

        enter(JobStage.WRITING_RESULT)
        return JobResult(
            job_id=job_id,
            timestamp=timestamp,
            youtube_url=url,
            status=JobStatus.COMPLETED,
            completed_at=_now(),
            screenshot_path=f"/{SCREENSHOTS_DIRNAME}/{screenshot_name}",
            audio_path=f"/{AUDIO_DIRNAME}/{audio_name}",
            transcript=annotated,
            processing_summary=summarize(annotated.segments),
        )

    @staticmethod
    def _failure(job_id: str, url: str, timestamp: str, stage: str,
                 code: str, message: str, retryable: bool) -> JobResult:
        return JobResult(
            job_id=job_id,
            timestamp=timestamp,
            youtube_url=url,
            status=JobStatus.FAILED,
            completed_at=_now(),
            error=message,
            error_code=code,
            failed_stage=stage,
            retryable=retryable,
        )
