"""
Cleanup: delete a job's scratch workspace once its audio has been transcoded.
Published artifacts (screenshot, WAV, result) live elsewhere and are kept.
"""

import shutil
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def cleanup_job_workspace(job_workspace: Path, enabled: bool = True) -> bool:
    """
    Remove <jobs_dir>/<job_id>/ and everything under it.
    Returns True if the workspace is gone afterwards.
    """
    if not enabled:
        logger.debug("Keeping workspace: %s", job_workspace)
        return False
    if not job_workspace.exists():
        return True

    try:
        shutil.rmtree(job_workspace)
        logger.debug("Deleted workspace: %s", job_workspace)
        return True
    except OSError as e:
        logger.warning("Failed to delete %s: %s", job_workspace, e)
        return False
