"""
Orphan sweep for backing files.

A store that never reached teardown (crash, kill -9) leaves its temp files
behind. The sweep deletes files that follow the stager naming pattern and
are older than a cutoff. Age is the only guard: a file of a session that is
still running but older than the cutoff is deleted too, so the cutoff must
exceed the longest session sharing the directory.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from stager.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SweepReport:
    """Outcome of one sweep."""

    removed: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)
    bytes_freed: int = 0

    @property
    def removed_count(self) -> int:
        return len(self.removed)


def find_orphans(
    directory: Path,
    prefix: str,
    suffix: str,
    older_than: float,
    now: float | None = None,
) -> list[Path]:
    """List backing files older than older_than seconds.

    Args:
        directory: Directory holding backing files.
        prefix: Backing file prefix.
        suffix: Backing file suffix.
        older_than: Minimum age in seconds, judged by mtime.
        now: Reference time (defaults to time.time()).

    Returns:
        Sorted list of candidate paths.
    """
    now = time.time() if now is None else now
    candidates: list[Path] = []

    if not directory.is_dir():
        return candidates

    for path in directory.glob(f"{prefix}*{suffix}"):
        try:
            stat = path.stat()
        except FileNotFoundError:
            continue
        if not path.is_file():
            continue
        if now - stat.st_mtime >= older_than:
            candidates.append(path)

    return sorted(candidates)


def sweep_orphans(
    directory: Path,
    prefix: str,
    suffix: str,
    older_than: float,
    dry_run: bool = False,
) -> SweepReport:
    """Delete orphaned backing files.

    Failures are logged and reported, never raised.
    """
    report = SweepReport()

    for path in find_orphans(directory, prefix, suffix, older_than):
        try:
            size = path.stat().st_size
            if not dry_run:
                os.remove(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("Could not delete orphaned file", path=str(path), error=str(e))
            report.failed.append(path)
            continue
        report.removed.append(path)
        report.bytes_freed += size

    logger.info(
        "Swept orphaned backing files",
        directory=str(directory),
        removed=report.removed_count,
        failed=len(report.failed),
        bytes_freed=report.bytes_freed,
        dry_run=dry_run,
    )
    return report
