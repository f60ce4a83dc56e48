"""Per-invocation metrics for the speech stage.

StageMetrics holds what one submit_batch() or recognize() call did,
StageTimer measures its wall time, and log_stage_metrics() emits the
record as a single structured JSON line on stdout.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime


@dataclass
class StageMetrics:
    """Metrics collected for a single entry-point invocation."""

    stage: str
    bpa_id: str | None
    filename: str | None
    status: str
    duration_seconds: float
    attempts: int = 0
    transcript_chars: int = 0
    error_kind: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of a stage.

    Usage:
        timer = StageTimer("stt-batch")
        with timer:
            await submit()
        print(timer.duration_seconds)
    """

    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.end_time = datetime.now(UTC)
        self.duration_seconds = time.monotonic() - self._mono_start


def log_stage_metrics(metrics: StageMetrics) -> None:
    """Emit stage metrics as one JSON line to stdout.

    Args:
        metrics: Populated StageMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO",
        "metric_type": "stt_stage",
        **asdict(metrics),
    }
    print(json.dumps(entry))
