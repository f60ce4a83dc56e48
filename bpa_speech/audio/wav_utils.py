"""WAV payload helpers for streaming recognition.

Streaming backends accept raw PCM plus an explicit stream format, so the
in-memory WAV container is split into its header fields and frame data.
"""

import io
import wave
from dataclasses import dataclass


@dataclass(frozen=True)
class WavFormat:
    sample_rate: int
    sample_width: int  # bytes per sample
    channels: int

    @property
    def bits_per_sample(self) -> int:
        return self.sample_width * 8


def read_wav_pcm(data: bytes) -> tuple[WavFormat, bytes]:
    """Parse an in-memory WAV file.

    Args:
        data: Complete WAV file contents.

    Returns:
        The stream format and the raw PCM frames.

    Raises:
        ValueError: If the payload is not a readable PCM WAV file.
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            fmt = WavFormat(
                sample_rate=wf.getframerate(),
                sample_width=wf.getsampwidth(),
                channels=wf.getnchannels(),
            )
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as exc:
        raise ValueError(f"Failed to read WAV payload: {exc}") from exc
    return fmt, frames
