"""
Security utilities for the YouTube Analysis Service.
- Job id validation (ids double as file names)
- Path traversal protection
- Safe subprocess execution (argument arrays only)
"""

import re
import subprocess
import pathlib
import logging

from ytanalysis.core.constants import SAFE_JOB_ID_PATTERN

logger = logging.getLogger(__name__)

_SAFE_JOB_ID_RE = re.compile(SAFE_JOB_ID_PATTERN)


# ── Filename / path safety ────────────────────────────────────────────

def is_safe_job_id(job_id: str | None) -> bool:
    """True if the id can be used verbatim as a file name stem."""
    if not job_id:
        return False
    return bool(_SAFE_JOB_ID_RE.match(job_id))


def safe_child_path(root: pathlib.Path, name: str) -> pathlib.Path:
    """
    Join `name` onto `root`, enforcing that realpath(result) stays
    inside realpath(root). Raises ValueError on traversal.
    """
    candidate = root / name
    real_root = root.resolve(strict=False)
    real_candidate = candidate.resolve(strict=False)
    if real_candidate != real_root and real_root not in real_candidate.parents:
        raise ValueError(f"Path traversal detected: {name!r}")
    return candidate


# ── Subprocess safety ─────────────────────────────────────────────────

def run_subprocess(args: list[str] | tuple[str, ...], **kwargs) -> subprocess.CompletedProcess:
    """
    Run an external tool (yt-dlp, ffmpeg) from an argument array.
    A string command line is rejected and the shell is never used.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    kwargs.pop('shell', None)
    argv = [str(a) for a in args]
    logger.debug("Running %s: %s", argv[0], ' '.join(argv[1:]))
    return subprocess.run(argv, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300, **kwargs) -> subprocess.CompletedProcess:
    """Run with stdout/stderr captured as text; undecodable bytes are replaced."""
    kwargs.setdefault('errors', 'replace')
    return run_subprocess(args, capture_output=True, text=True, timeout=timeout, **kwargs)
