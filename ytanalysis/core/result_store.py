"""
Result store: one JSON file per terminal job record.
Write-once per key, safe for any number of concurrent readers.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from ytanalysis.core.error_codes import JobError
from ytanalysis.core.constants import ErrorCode
from ytanalysis.core.security_utils import is_safe_job_id, safe_child_path

logger = logging.getLogger(__name__)


class ResultStore:
    """Maps job id -> terminal record under <results_dir>/<job_id>.json."""

    def __init__(self, results_dir: Path):
        self.results_dir = Path(results_dir)
        self.results_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, job_id: str) -> Path:
        return safe_child_path(self.results_dir, f"{job_id}.json")

    def write(self, job_id: str, record: dict) -> Path:
        """
        Persist a terminal record. The record is fully written to a temp file
        first and then hard-linked into place, so readers never see a partial
        file and an existing record is never replaced.
        Raises JobError(RESULT_EXISTS) if the job already has a record.
        """
        if not is_safe_job_id(job_id):
            raise ValueError(f"Unsafe job id: {job_id!r}")

        final_path = self._path(job_id)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{job_id}.", suffix=".tmp",
                                        dir=self.results_dir)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(record, f, indent=2)
            try:
                os.link(tmp_name, final_path)
            except FileExistsError:
                raise JobError(ErrorCode.RESULT_EXISTS,
                               f"Result for job {job_id} already written")
        finally:
            os.unlink(tmp_name)

        logger.info("Wrote result: %s", final_path)
        return final_path

    def read(self, job_id: str) -> dict | None:
        """Return the stored record, or None if there is none (yet)."""
        if not is_safe_job_id(job_id):
            return None
        try:
            with open(self._path(job_id), 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return None

