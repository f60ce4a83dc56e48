"""Speech-to-text stage for the document processing pipeline."""

from bpa_speech.batch import TranscriptionJobSubmitter
from bpa_speech.config import SpeechSettings, StorageSettings
from bpa_speech.models import PipelineItem
from bpa_speech.streaming.controller import RecognitionSessionController

__all__ = [
    "PipelineItem",
    "RecognitionSessionController",
    "SpeechSettings",
    "StorageSettings",
    "TranscriptionJobSubmitter",
]
