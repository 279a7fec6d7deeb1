"""Audio analysis module."""

from .analyzer import AudioAnalyzer
from .audio_pub import AudioSamplePublisher
from .frame_clock import FrameScheduler
from .graph import AnalyserNode, AudioGraph
from .media import MediaSource, ArrayMediaSource, WavFileSource, MEDIA_LIFECYCLE_TOPIC

__all__ = [
    'AudioAnalyzer',
    'AudioSamplePublisher',
    'FrameScheduler',
    'AnalyserNode',
    'AudioGraph',
    'MediaSource',
    'ArrayMediaSource',
    'WavFileSource',
    'MEDIA_LIFECYCLE_TOPIC',
]
