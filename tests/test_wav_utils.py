"""Tests for WAV payload helpers."""

import io
import wave

import pytest

from bpa_speech.audio.wav_utils import WavFormat, read_wav_pcm


def _wav_bytes(frames: bytes, sample_rate: int, channels: int, width: int) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(width)
        wf.setframerate(sample_rate)
        wf.writeframes(frames)
    return buffer.getvalue()


class TestReadWavPcm:
    """Tests for read_wav_pcm."""

    def test_returns_format_and_frames(self) -> None:
        frames = b"\x10\x00\x20\x00" * 100
        fmt, pcm = read_wav_pcm(_wav_bytes(frames, 16000, 2, 2))

        assert fmt == WavFormat(sample_rate=16000, sample_width=2, channels=2)
        assert fmt.bits_per_sample == 16
        assert pcm == frames

    def test_empty_wav(self) -> None:
        fmt, pcm = read_wav_pcm(_wav_bytes(b"", 8000, 1, 2))
        assert fmt.sample_rate == 8000
        assert pcm == b""

    def test_garbage_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Failed to read WAV payload"):
            read_wav_pcm(b"definitely not audio")

    def test_truncated_header_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            read_wav_pcm(b"RIFF")
