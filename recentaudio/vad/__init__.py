"""Voice activity segmentation pipeline."""

from .base import AbstractSpeechClassifier
from .driver import WindowedClassifierDriver, ProgressReporter, default_pool_size
from .segments import SegmentMerger, DEFAULT_SPEECH_THRESHOLD
from .processor import VADProcessor, DEFAULT_PADDING_MS, DEFAULT_MERGE_GAP_MS

__all__ = [
    "AbstractSpeechClassifier",
    "WindowedClassifierDriver",
    "ProgressReporter",
    "default_pool_size",
    "SegmentMerger",
    "DEFAULT_SPEECH_THRESHOLD",
    "VADProcessor",
    "DEFAULT_PADDING_MS",
    "DEFAULT_MERGE_GAP_MS",
]
