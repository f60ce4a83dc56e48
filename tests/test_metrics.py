"""Tests for stage metrics and timing."""

import json
import time
from unittest.mock import MagicMock

import httpx
import pytest

from bpa_speech.batch import TranscriptionJobSubmitter
from bpa_speech.config import SpeechSettings
from bpa_speech.models import PipelineItem
from bpa_speech.observability.metrics import StageMetrics, StageTimer, log_stage_metrics
from bpa_speech.storage.blob_store import BlobStore


class TestStageTimer:
    """Tests for StageTimer context manager."""

    def test_records_duration(self) -> None:
        timer = StageTimer("stt-batch")
        with timer:
            time.sleep(0.01)

        assert timer.duration_seconds >= 0.01
        assert timer.start_time is not None
        assert timer.end_time is not None
        assert timer.end_time >= timer.start_time

    def test_records_duration_on_exception(self) -> None:
        timer = StageTimer("stt-stream")
        with pytest.raises(RuntimeError):
            with timer:
                raise RuntimeError("fail")

        assert timer.end_time is not None


class TestLogStageMetrics:
    """Tests for log_stage_metrics output."""

    def test_emits_single_json_line(self, capsys: pytest.CaptureFixture[str]) -> None:
        log_stage_metrics(
            StageMetrics(
                stage="stt-stream",
                bpa_id="bpa-1",
                filename="a.wav",
                status="completed",
                duration_seconds=1.5,
                transcript_chars=12,
            )
        )

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["metric_type"] == "stt_stage"
        assert entry["stage"] == "stt-stream"
        assert entry["transcript_chars"] == 12
        assert entry["error_kind"] is None

    async def test_batch_submission_emits_metrics(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store = MagicMock(spec=BlobStore)
        store.generate_read_url.return_value = "https://blobs/a.wav"
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(201, headers={"location": "https://job/1"})
            )
        )
        submitter = TranscriptionJobSubmitter(
            SpeechSettings(subscription_key="k", region="r"), store, client=client
        )

        await submitter.submit_batch(PipelineItem(filename="a.wav", bpa_id="b"), 0)

        entries = [
            json.loads(line)
            for line in capsys.readouterr().out.splitlines()
            if '"metric_type"' in line
        ]
        assert entries[-1]["status"] == "submitted"
        assert entries[-1]["attempts"] == 1
